from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.bookings import lifecycle
from app.domain.bookings.db_models import Booking
from app.domain.bookings.lifecycle import BookingStageKey
from app.domain.bookings.views import (
    BookingBoardVariant,
    BookingViewVariant,
    QueryValue,
    get_booking_board_heading,
    is_board_read_only,
    resolve_booking_board_variant,
    resolve_booking_view_variant,
)


@dataclass(frozen=True)
class LoadedBookingDetail:
    booking: Booking
    variant: BookingViewVariant
    stage_key: BookingStageKey


@dataclass(frozen=True)
class BookingBoard:
    variant: BookingBoardVariant
    heading: str
    read_only: bool
    columns: dict[BookingStageKey, list[Booking]]
    filters: dict[BookingStageKey, bool]


async def get_booking(session: AsyncSession, booking_id: int) -> Booking | None:
    return await session.get(Booking, booking_id)


async def load_booking_detail(
    session: AsyncSession, booking_id: int, view: QueryValue = None
) -> LoadedBookingDetail | None:
    booking = await get_booking(session, booking_id)
    if booking is None:
        return None
    return LoadedBookingDetail(
        booking=booking,
        variant=resolve_booking_view_variant(view),
        stage_key=lifecycle.resolve_booking_stage_key(booking.crm_status_id, booking.status),
    )


def group_by_stage(bookings: list[Booking]) -> dict[BookingStageKey, list[Booking]]:
    columns: dict[BookingStageKey, list[Booking]] = {key: [] for key in BookingStageKey}
    for booking in bookings:
        key = lifecycle.resolve_booking_stage_key(booking.crm_status_id, booking.status)
        columns[key].append(booking)
    return columns


async def build_booking_board(session: AsyncSession, view: QueryValue = None) -> BookingBoard:
    variant = resolve_booking_board_variant(view)
    result = await session.execute(
        select(Booking).order_by(Booking.start_at.asc().nullslast(), Booking.booking_id.asc())
    )
    return BookingBoard(
        variant=variant,
        heading=get_booking_board_heading(variant),
        read_only=is_board_read_only(variant),
        columns=group_by_stage(list(result.scalars().all())),
        filters=lifecycle.default_stage_filters(),
    )
