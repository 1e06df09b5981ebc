from __future__ import annotations

from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations.contract import (
    ALERTING,
    STUBBED_DISPATCH,
    DispatchResult,
    IntegrationMode,
    log_stubbed,
    not_implemented,
    resolve_mode,
)
from app.domain.integrations.schemas import AlertPayload


async def send_alert(gate: FeatureFlagGate, payload: AlertPayload) -> DispatchResult:
    mode = await resolve_mode(gate, ALERTING)
    if mode is IntegrationMode.STUBBED:
        log_stubbed(ALERTING, payload.model_dump(mode="json"))
        return STUBBED_DISPATCH

    raise not_implemented(ALERTING, "Alert webhook dispatch not yet wired. Enable after secrets rotation.")
