from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.errors import FeatureFlagStoreError
from app.domain.feature_flags.db_models import SystemFeatureFlag
from app.domain.feature_flags.schemas import FeatureFlag
from app.infra.metrics import metrics

logger = logging.getLogger(__name__)

FlagRow = tuple[str, object]


class FeatureFlagStore(Protocol):
    async def fetch_rows(self) -> Iterable[FlagRow]: ...


class SqlFeatureFlagStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def fetch_rows(self) -> list[FlagRow]:
        stmt = sa.select(SystemFeatureFlag.flag, SystemFeatureFlag.is_enabled)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise FeatureFlagStoreError("feature flag store unavailable") from exc
        return [(row.flag, row.is_enabled) for row in result]


@dataclass(frozen=True)
class FeatureFlagSnapshot:
    values: Mapping[FeatureFlag, bool]

    def is_enabled(self, flag: FeatureFlag) -> bool:
        return self.values.get(flag, False)

    def as_dict(self) -> dict[FeatureFlag, bool]:
        return {flag: self.is_enabled(flag) for flag in FeatureFlag}


def build_snapshot(rows: Iterable[FlagRow]) -> FeatureFlagSnapshot:
    """Fold ``(flag, is_enabled)`` rows into a snapshot.

    Rows for names outside :class:`FeatureFlag` are ignored and a NULL
    ``is_enabled`` counts as absent. Anything that is not a two-item row with a
    boolean value raises :class:`FeatureFlagStoreError`.
    """

    values: dict[FeatureFlag, bool] = {}
    for row in rows:
        if not isinstance(row, (tuple, list)) or len(row) != 2:
            raise FeatureFlagStoreError(f"malformed feature flag row: {row!r}")
        name, is_enabled = row
        try:
            flag = FeatureFlag(name)
        except ValueError:
            logger.info("feature_flag_unknown_row", extra={"extra": {"flag": str(name)}})
            continue
        if is_enabled is None:
            continue
        if not isinstance(is_enabled, bool):
            raise FeatureFlagStoreError(f"feature flag {flag.value} has a non-boolean value")
        values[flag] = is_enabled
    return FeatureFlagSnapshot(values=values)


class FeatureFlagGate:
    """Read-through flag cache for a single request scope.

    Create one per request and drop it with the request. The first lookup
    loads the snapshot from the store; concurrent lookups await that same
    load, and later lookups reuse the cached snapshot. A failed load is not
    cached, so the error reaches every caller that was waiting on it. When
    every waiter is cancelled before the load finishes, the load is cancelled
    too and nothing is cached.
    """

    def __init__(self, store: FeatureFlagStore) -> None:
        self._store = store
        self._snapshot: FeatureFlagSnapshot | None = None
        self._pending: asyncio.Task[FeatureFlagSnapshot] | None = None
        self._waiters = 0

    async def get_snapshot(self) -> FeatureFlagSnapshot:
        if self._snapshot is not None:
            return self._snapshot
        if self._pending is None:
            self._pending = asyncio.get_running_loop().create_task(self._load())
        pending = self._pending
        self._waiters += 1
        try:
            return await asyncio.shield(pending)
        finally:
            self._waiters -= 1
            if self._waiters == 0 and not pending.done():
                pending.cancel()
                if self._pending is pending:
                    self._pending = None
                logger.info("feature_flag_fetch_abandoned")

    async def is_enabled(self, flag: FeatureFlag) -> bool:
        snapshot = await self.get_snapshot()
        return snapshot.is_enabled(flag)

    async def _load(self) -> FeatureFlagSnapshot:
        try:
            snapshot = build_snapshot(await self._store.fetch_rows())
        except Exception as exc:
            self._pending = None
            metrics.record_feature_flag_fetch("error")
            logger.warning(
                "feature_flag_fetch_failed",
                extra={"extra": {"error_type": type(exc).__name__}},
            )
            raise
        self._snapshot = snapshot
        metrics.record_feature_flag_fetch("ok")
        logger.info(
            "feature_flags_loaded",
            extra={
                "extra": {
                    "enabled": sorted(flag.value for flag, value in snapshot.values.items() if value),
                }
            },
        )
        return snapshot


async def set_feature_flag(
    session: AsyncSession,
    flag: FeatureFlag,
    *,
    enabled: bool | None,
    description: str | None = None,
) -> SystemFeatureFlag:
    record = await session.get(SystemFeatureFlag, flag.value)
    if record is None:
        record = SystemFeatureFlag(flag=flag.value)
        session.add(record)
    record.is_enabled = enabled
    if description is not None:
        record.description = description
    await session.flush()
    return record
