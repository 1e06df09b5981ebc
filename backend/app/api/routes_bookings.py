import logging

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db_session, get_feature_flag_gate
from app.domain.bookings import lifecycle
from app.domain.bookings import schemas as booking_schemas
from app.domain.bookings import service as booking_service
from app.domain.errors import DomainError
from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations import invoicing_service
from app.domain.integrations.contract import Stubbed
from app.domain.integrations.schemas import SalesOrderResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/v1/bookings/board", response_model=booking_schemas.BookingBoardResponse)
async def get_booking_board(
    view: list[str] | None = Query(None),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingBoardResponse:
    board = await booking_service.build_booking_board(session, view)
    return booking_schemas.BookingBoardResponse(
        variant=board.variant,
        heading=board.heading,
        read_only=board.read_only,
        columns=[
            booking_schemas.BookingBoardColumn(
                stage_key=stage_key,
                visible=board.filters[stage_key],
                bookings=[booking_schemas.BookingSummary.model_validate(item) for item in bookings],
            )
            for stage_key, bookings in board.columns.items()
        ],
    )


@router.get("/v1/bookings/{booking_id}", response_model=booking_schemas.BookingDetailResponse)
async def get_booking_detail(
    booking_id: int,
    view: list[str] | None = Query(None),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingDetailResponse:
    detail = await booking_service.load_booking_detail(session, booking_id, view)
    if detail is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    booking = detail.booking
    return booking_schemas.BookingDetailResponse(
        booking=booking_schemas.BookingSummary.model_validate(booking),
        variant=detail.variant,
        stage_key=detail.stage_key,
        stage_label=lifecycle.stage_meta_for(booking.crm_status_id).label,
        requires_sales_order=lifecycle.requires_sales_order(booking.crm_status_id),
    )


@router.post("/v1/bookings/{booking_id}/sales-order", response_model=SalesOrderResponse)
async def create_booking_sales_order(
    booking_id: int,
    session: AsyncSession = Depends(get_db_session),
    gate: FeatureFlagGate = Depends(get_feature_flag_gate),
) -> SalesOrderResponse:
    booking = await booking_service.get_booking(session, booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if not lifecycle.requires_sales_order(booking.crm_status_id):
        raise DomainError(
            detail="Booking pipeline stage does not trigger a sales order",
            title="Sales Order Not Applicable",
        )
    result = await invoicing_service.create_sales_order(
        gate, invoicing_service.build_sales_order_draft(booking)
    )
    logger.info(
        "sales_order_requested",
        extra={"extra": {"booking_id": booking_id, "mode": result.mode.value}},
    )
    note = result.note if isinstance(result, Stubbed) else ""
    return SalesOrderResponse(booking_id=booking_id, mode=result.mode, note=note)
