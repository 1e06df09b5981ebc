from __future__ import annotations

from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations.contract import (
    STUBBED_DISPATCH,
    TELEMETRY,
    DispatchResult,
    IntegrationMode,
    log_stubbed,
    not_implemented,
    resolve_mode,
)
from app.domain.integrations.schemas import TelemetryEvent


async def enqueue_telemetry(gate: FeatureFlagGate, event: TelemetryEvent) -> DispatchResult:
    mode = await resolve_mode(gate, TELEMETRY)
    if mode is IntegrationMode.STUBBED:
        log_stubbed(TELEMETRY, event.model_dump(mode="json"))
        return STUBBED_DISPATCH

    raise not_implemented(TELEMETRY, "Telemetry pipelines not yet connected to external bus.")
