from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from app.domain.errors import IntegrationNotImplementedError
from app.domain.feature_flags import FeatureFlag, FeatureFlagGate
from app.infra.metrics import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IntegrationMode(str, Enum):
    STUBBED = "stubbed"
    LIVE = "live"


class DispatchStatus(str, Enum):
    SKIPPED = "skipped"
    QUEUED = "queued"


@dataclass(frozen=True)
class Stubbed:
    note: str

    @property
    def mode(self) -> IntegrationMode:
        return IntegrationMode.STUBBED


@dataclass(frozen=True)
class Live(Generic[T]):
    payload: T

    @property
    def mode(self) -> IntegrationMode:
        return IntegrationMode.LIVE


IntegrationResult = Union[Stubbed, Live[T]]


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    mode: IntegrationMode

    def as_payload(self) -> dict[str, str]:
        return {"status": self.status.value, "mode": self.mode.value}


STUBBED_DISPATCH = DispatchResult(status=DispatchStatus.SKIPPED, mode=IntegrationMode.STUBBED)


@dataclass(frozen=True)
class Integration:
    name: str
    flag: FeatureFlag


ALERTING = Integration("alerting", FeatureFlag.ALERTING)
TELEMETRY = Integration("telemetry", FeatureFlag.TELEMETRY_PIPELINES)
AI_COPILOT = Integration("ai_copilot", FeatureFlag.AI_COPILOT)
CRM = Integration("crm", FeatureFlag.CRM_LIVE)
INVOICING = Integration("invoicing", FeatureFlag.INVOICING_LIVE)


async def resolve_mode(gate: FeatureFlagGate, integration: Integration) -> IntegrationMode:
    enabled = await gate.is_enabled(integration.flag)
    mode = IntegrationMode.LIVE if enabled else IntegrationMode.STUBBED
    metrics.record_integration_call(integration.name, mode.value)
    return mode


def log_stubbed(integration: Integration, payload: dict[str, Any]) -> None:
    logger.info(
        "integration_stubbed",
        extra={"extra": {"integration": integration.name, "payload": payload}},
    )


def not_implemented(integration: Integration, detail: str) -> IntegrationNotImplementedError:
    return IntegrationNotImplementedError(integration=integration.name, detail=detail)
