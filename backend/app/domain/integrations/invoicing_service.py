from __future__ import annotations

from typing import Any

from app.domain.bookings.db_models import Booking
from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations.contract import (
    INVOICING,
    IntegrationMode,
    IntegrationResult,
    Stubbed,
    log_stubbed,
    not_implemented,
    resolve_mode,
)
from app.domain.integrations.schemas import SalesOrderDraft


def build_sales_order_draft(booking: Booking) -> SalesOrderDraft:
    return SalesOrderDraft(
        booking_id=booking.booking_id,
        booking_code=booking.external_code,
        client_name=booking.client_name,
        total_amount=booking.total_amount,
    )


async def create_sales_order(
    gate: FeatureFlagGate, draft: SalesOrderDraft
) -> IntegrationResult[dict[str, Any]]:
    mode = await resolve_mode(gate, INVOICING)
    if mode is IntegrationMode.STUBBED:
        log_stubbed(INVOICING, {"booking_id": draft.booking_id, "booking_code": draft.booking_code})
        return Stubbed(
            note=f"Sales order for booking {draft.booking_code} not sent; invoicing live mode is disabled."
        )

    raise not_implemented(
        INVOICING,
        "Sales order push not yet implemented - enable after the invoicing contract is final.",
    )
