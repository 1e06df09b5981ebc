import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import httpx

from app.domain.bookings.db_models import Booking
from app.domain.errors import FeatureFlagStoreError
from app.domain.feature_flags import FeatureFlag, SqlFeatureFlagStore, set_feature_flag
from app.domain.integrations import crm_service
from app.settings import settings


def _seed(async_session_maker, *, flags=None, bookings=()):
    async def create() -> None:
        async with async_session_maker() as session:
            for flag, enabled in (flags or {}).items():
                await set_feature_flag(session, flag, enabled=enabled)
            session.add_all(list(bookings))
            await session.commit()

    asyncio.run(create())


def _booking(booking_id: int, crm_status_id: str | None, status: str = "new", day: int = 1) -> Booking:
    return Booking(
        booking_id=booking_id,
        external_code=f"BK-{booking_id:04d}",
        status=status,
        crm_status_id=crm_status_id,
        client_name="Fleet Client",
        vehicle_name="Nissan Patrol",
        start_at=datetime(2026, 3, day, 9, 0, tzinfo=timezone.utc),
        total_amount=Decimal("980.00"),
    )


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers.get("X-Request-ID")


def test_readyz(client):
    response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json()["database"] == "ok"


def test_feature_flags_default_to_disabled(client):
    response = client.get("/v1/feature-flags")

    assert response.status_code == 200
    assert response.json() == {"flags": {flag.value: False for flag in FeatureFlag}}


def test_feature_flags_reflect_stored_rows(client, async_session_maker):
    _seed(async_session_maker, flags={FeatureFlag.ALERTING: True, FeatureFlag.CRM_LIVE: False})

    flags = client.get("/v1/feature-flags").json()["flags"]

    assert flags["enableAlerting"] is True
    assert flags["enableCrmLive"] is False
    assert flags["enableAiCopilot"] is False


def test_flag_store_failure_returns_503(client, monkeypatch):
    async def failing_fetch(self):
        raise FeatureFlagStoreError("feature flag store unavailable")

    monkeypatch.setattr(SqlFeatureFlagStore, "fetch_rows", failing_fetch)

    response = client.post(
        "/v1/integrations/alerts",
        json={"channel": "ops", "title": "SLA breach", "body": "Late"},
    )

    assert response.status_code == 503
    assert response.json()["title"] == "Feature Flags Unavailable"


def test_booking_board_uses_first_view_and_sales_for_operations(client, async_session_maker):
    _seed(
        async_session_maker,
        bookings=[
            _booking(1, "75440391", day=3),
            _booking(2, "75440399", status="in-rent", day=1),
            _booking(3, None, status="delivery", day=2),
            _booking(4, "79790631", day=4),
        ],
    )

    response = client.get("/v1/bookings/board", params=[("view", "operations"), ("view", "exec")])

    assert response.status_code == 200
    payload = response.json()
    assert payload["variant"] == "sales"
    assert payload["heading"] == "Booking lifecycle board"
    assert payload["read_only"] is False
    columns = {column["stage_key"]: column for column in payload["columns"]}
    assert [item["booking_id"] for item in columns["confirmed"]["bookings"]] == [1]
    assert [item["booking_id"] for item in columns["in-rent"]["bookings"]] == [2]
    assert [item["booking_id"] for item in columns["delivery"]["bookings"]] == [3]
    assert [item["booking_id"] for item in columns["other"]["bookings"]] == [4]
    assert columns["other"]["visible"] is False


def test_exec_board_is_read_only(client):
    payload = client.get("/v1/bookings/board", params={"view": "exec"}).json()

    assert payload["variant"] == "exec"
    assert payload["heading"] == "Lifecycle overview"
    assert payload["read_only"] is True


def test_booking_detail_resolves_first_view_value(client, async_session_maker):
    _seed(async_session_maker, bookings=[_booking(5, "96150292", status="preparation")])

    response = client.get("/v1/bookings/5", params=[("view", "operations"), ("view", "exec")])

    assert response.status_code == 200
    payload = response.json()
    assert payload["variant"] == "operations"
    assert payload["stage_label"] == "Waiting for Payment"
    assert payload["stage_key"] == "other"
    assert payload["requires_sales_order"] is True
    assert payload["booking"]["external_code"] == "BK-0005"


def test_booking_detail_defaults_to_sales_view(client, async_session_maker):
    _seed(async_session_maker, bookings=[_booking(6, "75440399", status="in-rent")])

    payload = client.get("/v1/bookings/6", params={"view": "manager"}).json()

    assert payload["variant"] == "sales"
    assert payload["stage_key"] == "in-rent"


def test_missing_booking_returns_404(client):
    response = client.get("/v1/bookings/404")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")


def test_sales_order_is_stubbed_when_invoicing_disabled(client, async_session_maker):
    _seed(async_session_maker, bookings=[_booking(7, "75440391", status="preparation")])

    response = client.post("/v1/bookings/7/sales-order")

    assert response.status_code == 200
    payload = response.json()
    assert payload["booking_id"] == 7
    assert payload["mode"] == "stubbed"
    assert "BK-0007" in payload["note"]


def test_sales_order_rejected_outside_trigger_stages(client, async_session_maker):
    _seed(async_session_maker, bookings=[_booking(8, "75440399", status="in-rent")])

    response = client.post("/v1/bookings/8/sales-order")

    assert response.status_code == 400
    assert response.json()["title"] == "Sales Order Not Applicable"


def test_sales_order_not_implemented_when_invoicing_enabled(client, async_session_maker):
    _seed(
        async_session_maker,
        flags={FeatureFlag.INVOICING_LIVE: True},
        bookings=[_booking(9, "75440395", status="delivery")],
    )

    response = client.post("/v1/bookings/9/sales-order")

    assert response.status_code == 501
    assert response.json()["errors"] == [{"integration": "invoicing"}]


def test_alert_route_stubbed_and_not_implemented(client, async_session_maker):
    body = {"channel": "ops", "title": "SLA breach", "body": "Delivery late", "severity": "critical"}

    stubbed = client.post("/v1/integrations/alerts", json=body)
    assert stubbed.status_code == 200
    assert stubbed.json() == {"status": "skipped", "mode": "stubbed"}

    _seed(async_session_maker, flags={FeatureFlag.ALERTING: True})
    live = client.post("/v1/integrations/alerts", json=body)
    assert live.status_code == 501


def test_alert_route_validates_payload(client):
    response = client.post("/v1/integrations/alerts", json={"channel": "", "title": "x", "body": ""})

    assert response.status_code == 422
    assert response.json()["title"] == "Validation Error"


def test_telemetry_route_is_stubbed_by_default(client):
    response = client.post(
        "/v1/integrations/telemetry",
        json={"type": "integration_retry", "payload": {"integration": "crm", "attempt": 2}},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "skipped", "mode": "stubbed"}


def test_lead_summary_route_returns_stub(client):
    response = client.post(
        "/v1/integrations/lead-summary",
        json={"lead_id": "L-7", "client_name": "Sara Nasser"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["mode"] == "stubbed"
    assert payload["summary"] == "CRM lead L-7 for Sara Nasser pending AI enablement."


def test_crm_pipeline_serves_static_catalogue_when_disabled(client):
    response = client.get("/v1/crm/pipeline")

    assert response.status_code == 200
    payload = response.json()
    assert payload["mode"] == "stubbed"
    assert payload["note"] == crm_service.STUB_NOTE
    assert len(payload["stages"]) == 12


def test_crm_pipeline_misconfigured_returns_503(client, async_session_maker):
    settings.crm_base_url = None
    _seed(async_session_maker, flags={FeatureFlag.CRM_LIVE: True})

    response = client.get("/v1/crm/pipeline")

    assert response.status_code == 503
    assert response.json()["title"] == "Integration Misconfigured"


def test_crm_pipeline_upstream_failure_returns_502(client, async_session_maker):
    settings.crm_base_url = "https://crm.example.test"
    settings.crm_access_token = "crm-token"
    settings.crm_pipeline_id = "8801"
    crm_service.CRM_HTTP_TRANSPORT = httpx.MockTransport(lambda request: httpx.Response(503))
    _seed(async_session_maker, flags={FeatureFlag.CRM_LIVE: True})

    response = client.get("/v1/crm/pipeline")

    assert response.status_code == 502
    assert response.json()["title"] == "Bad Gateway"


def test_crm_pipeline_live(client, async_session_maker):
    settings.crm_base_url = "https://crm.example.test"
    settings.crm_access_token = "crm-token"
    settings.crm_pipeline_id = "8801"
    crm_service.CRM_HTTP_TRANSPORT = httpx.MockTransport(
        lambda request: httpx.Response(
            200,
            json={"_embedded": {"statuses": [{"id": 142, "name": "Won", "sort": 1}]}},
        )
    )
    _seed(async_session_maker, flags={FeatureFlag.CRM_LIVE: True})

    payload = client.get("/v1/crm/pipeline").json()

    assert payload["mode"] == "live"
    assert payload["note"] is None
    assert payload["stages"][0]["stage_key"] == "closed"


def test_metrics_endpoint_exposes_counters(client):
    client.get("/healthz")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_crm_pipeline_malformed_payload_returns_502(client, async_session_maker):
    settings.crm_base_url = "https://crm.example.test"
    settings.crm_access_token = "crm-token"
    settings.crm_pipeline_id = "8801"
    crm_service.CRM_HTTP_TRANSPORT = httpx.MockTransport(
        lambda request: httpx.Response(200, json=[{"id": 1}])
    )
    _seed(async_session_maker, flags={FeatureFlag.CRM_LIVE: True})

    response = client.get("/v1/crm/pipeline")

    assert response.status_code == 502
    assert response.json()["errors"] == [{"integration": "crm"}]
