import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.domain.bookings import db_models as booking_db_models  # noqa: F401,E402
from app.domain.feature_flags import db_models as feature_flag_db_models  # noqa: F401,E402
from app.domain.feature_flags import FeatureFlagGate  # noqa: E402
from app.domain.integrations import crm_service  # noqa: E402
from app.infra.db import Base, get_db_session  # noqa: E402
from app.main import app  # noqa: E402
from app.settings import settings  # noqa: E402


class FakeFlagStore:
    """In-memory flag store that counts how often it is read."""

    def __init__(self, rows=None, *, error: Exception | None = None, delay: float = 0.0) -> None:
        self.rows = list(rows or [])
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch_rows(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.rows)


@pytest.fixture()
def make_gate():
    def _make(flags=None, *, error: Exception | None = None, delay: float = 0.0):
        rows = [(flag.value, value) for flag, value in (flags or {}).items()]
        store = FakeFlagStore(rows, error=error, delay=delay)
        return FeatureFlagGate(store), store

    return _make


@pytest.fixture(scope="session")
def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture(scope="session")
def async_session_maker(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture(autouse=True)
def clean_database(test_engine):
    async def truncate_tables() -> None:
        async with test_engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                await conn.execute(table.delete())

    asyncio.run(truncate_tables())
    yield


@pytest.fixture(autouse=True)
def restore_settings():
    original_crm = (
        settings.crm_base_url,
        settings.crm_access_token,
        settings.crm_pipeline_id,
    )
    original_transport = crm_service.CRM_HTTP_TRANSPORT
    yield
    settings.crm_base_url, settings.crm_access_token, settings.crm_pipeline_id = original_crm
    crm_service.CRM_HTTP_TRANSPORT = original_transport


@pytest.fixture()
def client(async_session_maker):
    async def override_db_session():
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"
