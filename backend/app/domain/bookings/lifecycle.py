"""Booking lifecycle derived from the CRM sales pipeline.

Each CRM pipeline stage maps onto a coarse booking status, and the booking
board groups bookings into stage columns. The CRM stage wins when it is
recognised; otherwise the booking's own status decides the column.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BookingStatus(str, Enum):
    NEW = "new"
    PREPARATION = "preparation"
    DELIVERY = "delivery"
    IN_RENT = "in-rent"
    SETTLEMENT = "settlement"


class BookingStageKey(str, Enum):
    CONFIRMED = "confirmed"
    DELIVERY = "delivery"
    IN_RENT = "in-rent"
    PICKUP = "pickup"
    CLOSED = "closed"
    OTHER = "other"


@dataclass(frozen=True)
class PipelineStageMeta:
    id: str
    label: str
    group: str
    description: str
    booking_status: BookingStatus


PIPELINE_STAGES: tuple[PipelineStageMeta, ...] = (
    PipelineStageMeta(
        "79790631", "Request Bot Answering", "Intake",
        "Bot logged lead; waiting on human follow-up.", BookingStatus.NEW,
    ),
    PipelineStageMeta(
        "91703923", "Follow Up", "Intake",
        "Sales validating details with client.", BookingStatus.NEW,
    ),
    PipelineStageMeta(
        "96150292", "Waiting for Payment", "Preparation",
        "Hold assets until upfront payment clears.", BookingStatus.PREPARATION,
    ),
    PipelineStageMeta(
        "75440391", "Confirmed Bookings", "Preparation",
        "Docs ready; assign vehicle and driver.", BookingStatus.PREPARATION,
    ),
    PipelineStageMeta(
        "75440395", "Delivery Within 24 Hours", "Delivery",
        "Prep delivery run for the upcoming day.", BookingStatus.DELIVERY,
    ),
    PipelineStageMeta(
        "75440399", "Car with Customers", "Live",
        "Vehicle with client; monitor trip and SLA.", BookingStatus.IN_RENT,
    ),
    PipelineStageMeta(
        "76475495", "Pick Up Within 24 Hours", "Return",
        "Schedule pickup and closing logistics.", BookingStatus.DELIVERY,
    ),
    PipelineStageMeta(
        "78486287", "Objections", "Live",
        "Customer raised concerns under review.", BookingStatus.PREPARATION,
    ),
    PipelineStageMeta(
        "75440643", "Refund Deposit", "Settlement",
        "Processing inspections and deposit refund.", BookingStatus.SETTLEMENT,
    ),
    PipelineStageMeta(
        "75440639", "Deal Is Closed", "Settlement",
        "Paperwork complete; awaiting archive.", BookingStatus.SETTLEMENT,
    ),
    PipelineStageMeta(
        "142", "Closed · Won", "Closed",
        "Won lead; archive booking record.", BookingStatus.SETTLEMENT,
    ),
    PipelineStageMeta(
        "143", "Closed · Lost", "Closed",
        "Lost lead; keep for reporting only.", BookingStatus.SETTLEMENT,
    ),
)

PIPELINE_STAGE_META: dict[str, PipelineStageMeta] = {stage.id: stage for stage in PIPELINE_STAGES}
PIPELINE_STAGE_ORDER: tuple[str, ...] = tuple(stage.id for stage in PIPELINE_STAGES)

FALLBACK_STAGE_META = PipelineStageMeta(
    "fallback",
    "Unmapped stage",
    "Other",
    "CRM returned an unknown stage; review lead in CRM.",
    BookingStatus.SETTLEMENT,
)

# Waiting for Payment, Confirmed Bookings, Delivery Within 24 Hours
SALES_ORDER_STAGE_IDS = frozenset({"96150292", "75440391", "75440395"})

_STAGE_KEY_BY_CRM_STATUS: dict[str, BookingStageKey] = {
    "75440391": BookingStageKey.CONFIRMED,
    "75440395": BookingStageKey.DELIVERY,
    "75440399": BookingStageKey.IN_RENT,
    "76475495": BookingStageKey.PICKUP,
    "142": BookingStageKey.CLOSED,
    "75440643": BookingStageKey.CLOSED,
    "78486287": BookingStageKey.CLOSED,
}

_STAGE_KEY_BY_BOOKING_STATUS: dict[str, BookingStageKey] = {
    BookingStatus.DELIVERY.value: BookingStageKey.DELIVERY,
    BookingStatus.IN_RENT.value: BookingStageKey.IN_RENT,
    BookingStatus.SETTLEMENT.value: BookingStageKey.CLOSED,
}

STAGE_FILTER_DEFAULTS: dict[BookingStageKey, bool] = {
    BookingStageKey.CONFIRMED: True,
    BookingStageKey.DELIVERY: True,
    BookingStageKey.IN_RENT: True,
    BookingStageKey.PICKUP: True,
    BookingStageKey.CLOSED: True,
    BookingStageKey.OTHER: False,
}


def _normalize_status_id(crm_status_id: str | int | None) -> str | None:
    if crm_status_id is None or crm_status_id == "" or crm_status_id == 0:
        return None
    return str(crm_status_id)


def stage_meta_for(crm_status_id: str | int | None) -> PipelineStageMeta:
    normalized = _normalize_status_id(crm_status_id)
    if normalized is None:
        return FALLBACK_STAGE_META
    return PIPELINE_STAGE_META.get(normalized, FALLBACK_STAGE_META)


def booking_status_for_crm_stage(crm_status_id: str | int | None) -> BookingStatus:
    return stage_meta_for(crm_status_id).booking_status


def resolve_stage_key_from_crm_status(crm_status_id: str | int | None) -> BookingStageKey:
    normalized = _normalize_status_id(crm_status_id)
    if normalized is None:
        return BookingStageKey.OTHER
    return _STAGE_KEY_BY_CRM_STATUS.get(normalized, BookingStageKey.OTHER)


def resolve_booking_stage_key(
    crm_status_id: str | int | None, status: str | None
) -> BookingStageKey:
    from_crm = resolve_stage_key_from_crm_status(crm_status_id)
    if from_crm is not BookingStageKey.OTHER:
        return from_crm
    return _STAGE_KEY_BY_BOOKING_STATUS.get(status or "", BookingStageKey.OTHER)


def requires_sales_order(crm_status_id: str | int | None) -> bool:
    return _normalize_status_id(crm_status_id) in SALES_ORDER_STAGE_IDS


def default_stage_filters() -> dict[BookingStageKey, bool]:
    return dict(STAGE_FILTER_DEFAULTS)
