from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from app.domain.bookings import lifecycle
from app.domain.bookings.lifecycle import BookingStageKey, BookingStatus
from app.domain.errors import IntegrationConfigurationError, IntegrationUpstreamError
from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations.contract import (
    CRM,
    IntegrationMode,
    IntegrationResult,
    Live,
    Stubbed,
    resolve_mode,
)
from app.domain.integrations.schemas import CrmPipelinePayload, CrmStatusPayload
from app.settings import settings

logger = logging.getLogger(__name__)

CRM_PIPELINE_PATH = "/api/v4/leads/pipelines/{pipeline_id}"
CRM_HTTP_TRANSPORT: httpx.AsyncBaseTransport | None = None
STUB_NOTE = "CRM live sync disabled; serving the static pipeline catalogue."


@dataclass(frozen=True)
class CrmPipelineStage:
    id: str
    name: str
    sort: int
    group: str
    booking_status: BookingStatus
    stage_key: BookingStageKey
    known: bool


def _build_stage(stage_id: str, *, name: str | None, sort: int) -> CrmPipelineStage:
    meta = lifecycle.stage_meta_for(stage_id)
    return CrmPipelineStage(
        id=stage_id,
        name=name or meta.label,
        sort=sort,
        group=meta.group,
        booking_status=meta.booking_status,
        stage_key=lifecycle.resolve_stage_key_from_crm_status(stage_id),
        known=stage_id in lifecycle.PIPELINE_STAGE_META,
    )


def _stage_from_payload(status: CrmStatusPayload) -> CrmPipelineStage:
    return _build_stage(str(status.id), name=status.name, sort=status.sort or 0)


def static_pipeline_stages() -> list[CrmPipelineStage]:
    return [
        _build_stage(meta.id, name=None, sort=(index + 1) * 10)
        for index, meta in enumerate(lifecycle.PIPELINE_STAGES)
    ]


def _pipeline_url() -> str:
    base_url = (settings.crm_base_url or "").rstrip("/")
    return base_url + CRM_PIPELINE_PATH.format(pipeline_id=settings.crm_pipeline_id)


def parse_pipeline_payload(body: bytes) -> list[CrmPipelineStage]:
    try:
        payload = CrmPipelinePayload.model_validate_json(body)
    except ValidationError as exc:
        logger.warning(
            "crm_pipeline_payload_invalid",
            extra={"extra": {"error_count": exc.error_count()}},
        )
        raise IntegrationUpstreamError(
            integration=CRM.name, detail="crm_pipeline_payload_invalid"
        ) from exc
    return sorted(
        (_stage_from_payload(status) for status in payload.embedded.statuses),
        key=lambda stage: stage.sort,
    )


async def fetch_pipeline_stages(
    gate: FeatureFlagGate,
) -> IntegrationResult[list[CrmPipelineStage]]:
    mode = await resolve_mode(gate, CRM)
    if mode is IntegrationMode.STUBBED:
        return Stubbed(note=STUB_NOTE)
    if not settings.crm_configured:
        raise IntegrationConfigurationError("CRM live mode is enabled but CRM credentials are not configured")

    timeout = httpx.Timeout(settings.crm_timeout_seconds, connect=5.0)
    headers = {"Authorization": f"Bearer {settings.crm_access_token}"}
    async with httpx.AsyncClient(timeout=timeout, transport=CRM_HTTP_TRANSPORT) as client:
        response = await client.get(_pipeline_url(), headers=headers)
    response.raise_for_status()
    stages = parse_pipeline_payload(response.content)
    logger.info(
        "crm_pipeline_fetched",
        extra={
            "extra": {
                "stage_count": len(stages),
                "unknown_stage_count": sum(1 for stage in stages if not stage.known),
            }
        },
    )
    return Live(payload=stages)
