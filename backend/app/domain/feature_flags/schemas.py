from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class FeatureFlag(str, Enum):
    CRM_LIVE = "enableCrmLive"
    INVOICING_LIVE = "enableInvoicingLive"
    ALERTING = "enableAlerting"
    AI_COPILOT = "enableAiCopilot"
    TELEMETRY_PIPELINES = "enableTelemetryPipelines"


class FeatureFlagSnapshotResponse(BaseModel):
    flags: dict[FeatureFlag, bool]
