from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.feature_flags import FeatureFlagGate, SqlFeatureFlagStore
from app.infra.db import get_db_session


def get_feature_flag_gate(
    request: Request, session: AsyncSession = Depends(get_db_session)
) -> FeatureFlagGate:
    gate = getattr(request.state, "feature_flag_gate", None)
    if gate is None:
        gate = FeatureFlagGate(SqlFeatureFlagStore(session))
        request.state.feature_flag_gate = gate
    return gate


__all__ = ["get_db_session", "get_feature_flag_gate"]
