from fastapi import APIRouter, Depends

from app.dependencies import get_feature_flag_gate
from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations import (
    alerting_service,
    copilot_service,
    crm_service,
    telemetry_service,
)
from app.domain.integrations.contract import Stubbed
from app.domain.integrations.schemas import (
    AlertPayload,
    CrmPipelineResponse,
    CrmPipelineStageResponse,
    DispatchResponse,
    LeadCopilotSummary,
    LeadSummaryInput,
    TelemetryEvent,
)

router = APIRouter()


@router.get("/v1/crm/pipeline", response_model=CrmPipelineResponse)
async def get_crm_pipeline(gate: FeatureFlagGate = Depends(get_feature_flag_gate)) -> CrmPipelineResponse:
    result = await crm_service.fetch_pipeline_stages(gate)
    if isinstance(result, Stubbed):
        stages, note = crm_service.static_pipeline_stages(), result.note
    else:
        stages, note = result.payload, None
    return CrmPipelineResponse(
        mode=result.mode,
        note=note,
        stages=[CrmPipelineStageResponse.model_validate(stage) for stage in stages],
    )


@router.post("/v1/integrations/alerts", response_model=DispatchResponse)
async def post_alert(
    payload: AlertPayload, gate: FeatureFlagGate = Depends(get_feature_flag_gate)
) -> DispatchResponse:
    result = await alerting_service.send_alert(gate, payload)
    return DispatchResponse(status=result.status, mode=result.mode)


@router.post("/v1/integrations/telemetry", response_model=DispatchResponse)
async def post_telemetry(
    event: TelemetryEvent, gate: FeatureFlagGate = Depends(get_feature_flag_gate)
) -> DispatchResponse:
    result = await telemetry_service.enqueue_telemetry(gate, event)
    return DispatchResponse(status=result.status, mode=result.mode)


@router.post("/v1/integrations/lead-summary", response_model=LeadCopilotSummary)
async def post_lead_summary(
    lead: LeadSummaryInput, gate: FeatureFlagGate = Depends(get_feature_flag_gate)
) -> LeadCopilotSummary:
    return await copilot_service.get_lead_copilot_summary(gate, lead)
