from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.bookings.lifecycle import BookingStageKey, BookingStatus
from app.domain.integrations.contract import DispatchStatus, IntegrationMode


class AlertSeverity(str, Enum):
    INFO = "info"
    WARN = "warn"
    CRITICAL = "critical"


class AlertPayload(BaseModel):
    channel: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str
    severity: AlertSeverity = AlertSeverity.INFO


class TelemetryEventType(str, Enum):
    SLA_BREACH = "sla_breach"
    INTEGRATION_RETRY = "integration_retry"


class TelemetryEvent(BaseModel):
    type: TelemetryEventType
    payload: dict[str, Any] = Field(default_factory=dict)


class LeadSummaryInput(BaseModel):
    lead_id: str = Field(min_length=1)
    client_name: str = Field(min_length=1)
    itinerary: str = ""


class LeadCopilotSummary(BaseModel):
    mode: IntegrationMode
    summary: str
    next_action: str


class SalesOrderDraft(BaseModel):
    booking_id: int
    booking_code: str
    client_name: str | None = None
    total_amount: Decimal | None = None
    currency: str = "AED"


class DispatchResponse(BaseModel):
    status: DispatchStatus
    mode: IntegrationMode


class SalesOrderResponse(BaseModel):
    booking_id: int
    mode: IntegrationMode
    note: str


class CrmStatusPayload(BaseModel):
    id: int | str
    name: str | None = None
    sort: int | None = None


class CrmEmbeddedPayload(BaseModel):
    statuses: list[CrmStatusPayload] = Field(default_factory=list)


class CrmPipelinePayload(BaseModel):
    embedded: CrmEmbeddedPayload = Field(default_factory=CrmEmbeddedPayload, alias="_embedded")


class CrmPipelineStageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    sort: int
    group: str
    booking_status: BookingStatus
    stage_key: BookingStageKey
    known: bool


class CrmPipelineResponse(BaseModel):
    mode: IntegrationMode
    note: str | None = None
    stages: list[CrmPipelineStageResponse] = Field(default_factory=list)
