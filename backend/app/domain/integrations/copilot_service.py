from __future__ import annotations

from app.domain.feature_flags import FeatureFlagGate
from app.domain.integrations.contract import AI_COPILOT, IntegrationMode, not_implemented, resolve_mode
from app.domain.integrations.schemas import LeadCopilotSummary, LeadSummaryInput

STUB_NEXT_ACTION = (
    "Review documents, confirm fleet availability, then enable AI flag for narrative insights."
)


def build_stub_summary(lead: LeadSummaryInput) -> LeadCopilotSummary:
    return LeadCopilotSummary(
        mode=IntegrationMode.STUBBED,
        summary=f"CRM lead {lead.lead_id} for {lead.client_name} pending AI enablement.",
        next_action=STUB_NEXT_ACTION,
    )


async def get_lead_copilot_summary(gate: FeatureFlagGate, lead: LeadSummaryInput) -> LeadCopilotSummary:
    mode = await resolve_mode(gate, AI_COPILOT)
    if mode is IntegrationMode.STUBBED:
        return build_stub_summary(lead)

    raise not_implemented(
        AI_COPILOT,
        "AI copilot integration not yet implemented - enable after provider contract is ready.",
    )
