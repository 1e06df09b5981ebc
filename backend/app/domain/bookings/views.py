from __future__ import annotations

from collections.abc import Sequence
from enum import Enum


class BookingViewVariant(str, Enum):
    SALES = "sales"
    OPERATIONS = "operations"
    EXEC = "exec"


class BookingBoardVariant(str, Enum):
    SALES = "sales"
    EXEC = "exec"


QueryValue = str | Sequence[str] | None

BOARD_HEADINGS: dict[BookingBoardVariant, str] = {
    BookingBoardVariant.EXEC: "Lifecycle overview",
    BookingBoardVariant.SALES: "Booking lifecycle board",
}


def normalize_query_value(raw: QueryValue) -> str | None:
    """Collapse a repeated query parameter to its first value."""
    if raw is None or isinstance(raw, str):
        return raw
    for value in raw:
        return value
    return None


def resolve_booking_view_variant(raw: QueryValue) -> BookingViewVariant:
    view = normalize_query_value(raw)
    if view == BookingViewVariant.OPERATIONS.value:
        return BookingViewVariant.OPERATIONS
    if view == BookingViewVariant.EXEC.value:
        return BookingViewVariant.EXEC
    return BookingViewVariant.SALES


def resolve_booking_board_variant(raw: QueryValue) -> BookingBoardVariant:
    # "operations" is not a board variant and falls back to the sales board.
    view = normalize_query_value(raw)
    if view == BookingBoardVariant.EXEC.value:
        return BookingBoardVariant.EXEC
    return BookingBoardVariant.SALES


def get_booking_board_heading(variant: BookingBoardVariant) -> str:
    return BOARD_HEADINGS[variant]


def is_board_read_only(variant: BookingBoardVariant) -> bool:
    return variant is BookingBoardVariant.EXEC
