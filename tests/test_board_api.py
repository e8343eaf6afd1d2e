from __future__ import annotations

from datetime import datetime, timedelta, timezone

import fakeredis
from fastapi.testclient import TestClient

from openprs.dependencies import (
    get_board_service,
    get_decision_service,
    get_event_sink,
    get_store,
)
from openprs.main import create_app
from openprs.models.board import ChartKind, ChartPoint, PullRequestDocument, PullRequestState
from openprs.repositories.redis_store import RedisBoardStore
from openprs.services.board import BoardService
from openprs.services.decision import DecisionService
from openprs.telemetry import NullEventSink


def _doc(number: int, days_ago: int, **fields) -> PullRequestDocument:
    created = datetime.now(timezone.utc) - timedelta(days=days_ago)
    values = {
        "number": number,
        "title": f"PR {number}",
        "author": "alice",
        "pr_url": f"https://github.com/ethereum/EIPs/pull/{number}",
        "state": PullRequestState.OPEN,
        "created_at": created,
        "spec_type": "EIP",
        "category": "Other",
        "subcategory": "Waiting on Editor",
    }
    values.update(fields)
    return PullRequestDocument(**values)


def _build_test_client() -> tuple[TestClient, RedisBoardStore]:
    # Reset cached dependencies to avoid cross-test contamination.
    get_store.cache_clear()
    get_board_service.cache_clear()
    get_decision_service.cache_clear()
    get_event_sink.cache_clear()

    app = create_app()
    store = RedisBoardStore(fakeredis.FakeRedis(decode_responses=True))
    sink = NullEventSink()
    board = BoardService(store)
    decisions = DecisionService(sink)

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_event_sink] = lambda: sink
    app.dependency_overrides[get_board_service] = lambda: board
    app.dependency_overrides[get_decision_service] = lambda: decisions

    return TestClient(app), store


def test_healthcheck():
    client, _ = _build_test_client()
    assert client.get("/healthz").json() == {"status": "ok"}


def test_lifespan_holds_and_closes_event_sink(monkeypatch):
    class RecordingSink(NullEventSink):
        closed = False

        def close(self):
            self.closed = True

    sink = RecordingSink()
    monkeypatch.setattr("openprs.main.get_event_sink", lambda: sink)
    app = create_app()
    with TestClient(app) as client:
        assert client.get("/healthz").status_code == 200
        assert app.state.event_sink is sink
        assert sink.closed is False
    assert sink.closed is True


def test_board_usage_lists_specs():
    client, _ = _build_test_client()
    response = client.get("/v1/boards")
    assert response.status_code == 200
    assert response.json()["specs"] == ["eips", "ercs", "rips"]


def test_board_rows_filtered_and_sorted():
    client, store = _build_test_client()
    store.replace_pull_requests(
        "eips",
        [
            _doc(1, 3),
            _doc(2, 30, category="Typo"),
            _doc(3, 10, subcategory="Waiting on Author"),
            _doc(4, 50, state=PullRequestState.CLOSED),
        ],
    )

    response = client.get("/v1/boards/EIPs")
    assert response.status_code == 200
    body = response.json()
    assert body["spec"] == "eips"
    assert body["total"] == 3
    assert [row["number"] for row in body["rows"]] == [2, 3, 1]
    assert body["request_id"].startswith("rq_")

    filtered = client.get("/v1/boards/eips", params={"subcategory": "Waiting on Editor", "sort": "created"}).json()
    assert [row["number"] for row in filtered["rows"]] == [2, 1]
    typo = client.get("/v1/boards/eips", params={"category": "Typo"}).json()
    assert [row["number"] for row in typo["rows"]] == [2]


def test_board_rejects_unknown_spec_and_sort():
    client, _ = _build_test_client()
    unknown = client.get("/v1/boards/bips")
    assert unknown.status_code == 400
    assert unknown.json()["detail"]["allowed"] == ["eips", "ercs", "rips"]
    assert client.get("/v1/boards/eips", params={"sort": "age"}).status_code == 422


def test_board_aggregation_endpoint():
    client, store = _build_test_client()
    store.replace_pull_requests("ercs", [_doc(7, 0, author="carol")])
    month = datetime.now(timezone.utc).strftime("%Y-%m")

    body = client.get("/v1/boards/ercs/aggregation", params={"month": month}).json()
    assert body["aggregation"]["month_year"] == month
    assert body["aggregation"]["participants"][0]["name"] == "carol"
    assert client.get("/v1/boards/ercs/aggregation", params={"month": "24-1"}).status_code == 422


def test_chart_endpoint_supports_all_series():
    client, store = _build_test_client()
    store.replace_chart("all", ChartKind.CATEGORY, [ChartPoint(series="all", month_year="2024-02", type="Typo", count=3)])

    body = client.get("/v1/boards/all/charts/category").json()
    assert body["series"] == "all"
    assert body["points"][0]["count"] == 3
    assert client.get("/v1/boards/eips/charts/states").json()["points"] == []
    assert client.get("/v1/boards/eips/charts/bogus").status_code == 422
    assert client.get("/v1/boards/bips/charts/states").status_code == 400


def test_decision_endpoint_runs_engine():
    client, _ = _build_test_client()
    payload = {
        "repo": "ethereum/EIPs",
        "now": "2024-03-01T00:00:00Z",
        "inputs": {
            "pr": {
                "number": 9,
                "title": "Add EIP-9000",
                "opener_login": "alice",
                "created_at": "2024-01-01T00:00:00Z",
            },
            "records": [
                {"actor_login": "editor1", "source": "REVIEW_APPROVED", "timestamp": "2024-01-02T00:00:00Z"},
                {"actor_login": "alice", "source": "COMMIT", "timestamp": "2024-01-03T00:00:00Z"},
            ],
            "file_changes": [{"filename": "EIPS/eip-9000.md", "status": "added"}],
            "editors": ["editor1"],
            "authors": ["alice"],
        },
    }
    response = client.post("/v1/decisions", json=payload)
    assert response.status_code == 200
    body = response.json()
    assert body["result"]["category"] == "New EIP"
    assert body["result"]["subcategory"] == "Waiting on Editor"
    assert body["result"]["last_editor_action"]["actor"] == "editor1"
    assert body["waiting_since"] == "2024-01-03T00:00:00Z"


def test_decision_endpoint_validates_payload():
    client, _ = _build_test_client()
    response = client.post("/v1/decisions", json={"inputs": {"pr": {"number": 1, "created_at": "yesterday"}}})
    assert response.status_code == 422
