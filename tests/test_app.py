from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.schemas import DashboardResponse, DashboardStatus, SummaryModel
from app.web import _status_line
from datastore.mock_room_stats import MockRoomStatsTable
from services.errors import FailureKind, FetchError
from services.refresh import (
    RefreshOrchestrator,
    RefreshOutcome,
    RefreshStatus,
    build_default_orchestrator,
)
from settings import get_settings


class FailingSource:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch_recent(self, limit: int):
        self.calls += 1
        raise FetchError(FailureKind.missing_table, "relation room_stats does not exist", 404)

    async def aclose(self) -> None:
        return None


def _recent(seconds: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(seconds=seconds)).isoformat()


@pytest.fixture
def table() -> MockRoomStatsTable:
    table = MockRoomStatsTable(name="test")
    table.put_row({"room_id": "Lab", "people_count": 2, "timestamp": _recent(120)})
    table.put_row({"room_id": "Lab", "people_count": 9, "timestamp": _recent(5)})
    table.put_row({"room_id": "Library", "person_count": 0, "timestamp": _recent(30)})
    table.put_row({"room_id": "Hall", "people_count": -4, "timestamp": _recent(1)})
    return table


def _install(monkeypatch, orchestrator: RefreshOrchestrator) -> None:
    def build_test_orchestrator() -> RefreshOrchestrator:
        return orchestrator

    build_test_orchestrator.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_orchestrator", build_test_orchestrator)
    monkeypatch.setattr("app.api.build_default_orchestrator", build_test_orchestrator)
    monkeypatch.setattr("app.web.build_default_orchestrator", build_test_orchestrator)


@pytest.fixture
def api_client(monkeypatch, table: MockRoomStatsTable) -> Iterator[TestClient]:
    _install(monkeypatch, RefreshOrchestrator(source=table))
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_clears_default_orchestrator(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("MOCK_ROOM_STATS_PATH", str(tmp_path / "rows.json"))
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    get_settings.cache_clear()
    build_default_orchestrator.cache_clear()
    try:
        app = create_app()
        with TestClient(app):
            during = build_default_orchestrator()
        after = build_default_orchestrator()
        assert after is not during
    finally:
        build_default_orchestrator.cache_clear()
        get_settings.cache_clear()


def test_rooms_before_refresh_is_pending(api_client: TestClient) -> None:
    response = api_client.get("/rooms")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "pending"
    assert payload["rooms"] == []
    assert payload["summary"]["room_count"] == 0
    assert payload["refresh_status"] is None


def test_refresh_then_rooms(api_client: TestClient) -> None:
    response = api_client.post("/refresh")

    assert response.status_code == 200
    payload = response.json()
    assert payload["refresh_status"] == "succeeded"
    assert payload["status"] == "ok"
    assert [(room["room_id"], room["count"], room["tier"]) for room in payload["rooms"]] == [
        ("Lab", 9, "full"),
        ("Library", 0, "empty"),
    ]
    assert payload["rejected_rows"] == 1
    assert payload["summary"]["total_occupancy"] == 9
    assert payload["summary"]["tier_counts"] == {"empty": 1, "moderate": 0, "full": 1}
    assert payload["rooms"][0]["relative_label"].endswith("s ago")
    assert payload["rooms"][0]["is_stale"] is False

    rooms = api_client.get("/rooms").json()
    assert rooms["rooms"] == payload["rooms"]
    assert rooms["refresh_status"] is None


def test_refresh_with_no_rows_is_empty_not_error(monkeypatch) -> None:
    _install(monkeypatch, RefreshOrchestrator(source=MockRoomStatsTable(name="empty")))
    with TestClient(create_app()) as client:
        response = client.post("/refresh")

    assert response.status_code == 200
    assert response.json()["status"] == "empty"
    assert response.json()["refresh_status"] == "empty"


def test_refresh_failure_returns_bad_gateway(monkeypatch) -> None:
    _install(monkeypatch, RefreshOrchestrator(source=FailingSource()))
    with TestClient(create_app()) as client:
        response = client.post("/refresh")
        rooms = client.get("/rooms").json()

    assert response.status_code == 502
    assert response.json()["detail"].startswith("missing_table:")
    assert rooms["status"] == "error"
    assert rooms["failure"]["kind"] == "missing_table"
    assert rooms["failure"]["status_code"] == 404


def test_refresh_while_in_flight_is_accepted(monkeypatch, table: MockRoomStatsTable) -> None:
    orchestrator = RefreshOrchestrator(source=table)

    async def skipped_refresh() -> RefreshOutcome:
        return RefreshOutcome(status=RefreshStatus.skipped)

    monkeypatch.setattr(orchestrator, "refresh", skipped_refresh)
    _install(monkeypatch, orchestrator)
    with TestClient(create_app()) as client:
        response = client.post("/refresh")

    assert response.status_code == 202
    assert response.json()["refresh_status"] == "skipped"
    assert response.json()["status"] == "pending"


def test_ui_index_renders_cards(api_client: TestClient) -> None:
    response = api_client.get("/ui")

    assert response.status_code == 200
    body = response.text
    assert "Room Occupancy" in body
    assert "Lab" in body
    assert "9 people" in body
    assert "Library" in body
    assert "Connected" in body


def test_ui_index_escapes_room_names(monkeypatch) -> None:
    table = MockRoomStatsTable(name="test")
    table.put_row({"room_id": "<script>x</script>", "people_count": 1, "timestamp": _recent(3)})
    _install(monkeypatch, RefreshOrchestrator(source=table))

    with TestClient(create_app()) as client:
        body = client.get("/ui").text

    assert "<script>x</script>" not in body
    assert "&lt;script&gt;x&lt;/script&gt;" in body
    assert "1 person" in body


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (DashboardStatus.error, ("Failed to load data", "error")),
        (DashboardStatus.empty, ("No rooms with data", "warning")),
        (DashboardStatus.pending, ("Waiting for first refresh", "info")),
        (DashboardStatus.ok, ("Connected • 2 room(s)", "success")),
    ],
)
def test_status_line_per_dashboard_status(status: DashboardStatus, expected) -> None:
    dashboard = DashboardResponse(
        status=status,
        summary=SummaryModel(room_count=2, total_occupancy=5, stale_count=0),
    )

    assert _status_line(dashboard) == expected


def test_ui_shows_failure_state(monkeypatch) -> None:
    _install(monkeypatch, RefreshOrchestrator(source=FailingSource()))

    with TestClient(create_app()) as client:
        body = client.get("/ui").text

    assert "Failed to load data" in body


def test_refresh_script_reloads_only_after_success(api_client: TestClient) -> None:
    response = api_client.get("/static/dashboard.js")

    assert response.status_code == 200
    script = response.text
    assert "finally" not in script
    assert script.count("window.location.reload()") == 1
    assert script.index("if (response.ok)") < script.index("window.location.reload()")
    assert "refreshBtn.disabled = false" in script


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
