from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.bookings.lifecycle import BookingStageKey
from app.domain.bookings.views import BookingBoardVariant, BookingViewVariant


class BookingSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: int
    external_code: str
    status: str
    crm_status_id: str | None = None
    client_name: str | None = None
    vehicle_name: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    total_amount: Decimal | None = None


class BookingDetailResponse(BaseModel):
    booking: BookingSummary
    variant: BookingViewVariant
    stage_key: BookingStageKey
    stage_label: str
    requires_sales_order: bool


class BookingBoardColumn(BaseModel):
    stage_key: BookingStageKey
    visible: bool
    bookings: list[BookingSummary] = Field(default_factory=list)


class BookingBoardResponse(BaseModel):
    variant: BookingBoardVariant
    heading: str
    read_only: bool
    columns: list[BookingBoardColumn] = Field(default_factory=list)
