from fastapi import APIRouter, Depends

from app.dependencies import get_feature_flag_gate
from app.domain.feature_flags import FeatureFlagGate
from app.domain.feature_flags.schemas import FeatureFlagSnapshotResponse

router = APIRouter()


@router.get("/v1/feature-flags", response_model=FeatureFlagSnapshotResponse)
async def get_feature_flags(
    gate: FeatureFlagGate = Depends(get_feature_flag_gate),
) -> FeatureFlagSnapshotResponse:
    snapshot = await gate.get_snapshot()
    return FeatureFlagSnapshotResponse(flags=snapshot.as_dict())
