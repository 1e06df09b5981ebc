from app.domain.feature_flags.db_models import SystemFeatureFlag
from app.domain.feature_flags.schemas import FeatureFlag
from app.domain.feature_flags.service import (
    FeatureFlagGate,
    FeatureFlagSnapshot,
    FeatureFlagStore,
    SqlFeatureFlagStore,
    build_snapshot,
    set_feature_flag,
)

__all__ = [
    "FeatureFlag",
    "FeatureFlagGate",
    "FeatureFlagSnapshot",
    "FeatureFlagStore",
    "SqlFeatureFlagStore",
    "SystemFeatureFlag",
    "build_snapshot",
    "set_feature_flag",
]
