from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from types import SimpleNamespace

import fakeredis

from openprs.models.board import ChartKind, PullRequestState
from openprs.models.domain import DecisionInputs, PullRequestInfo
from openprs.repositories.redis_store import RedisBoardStore
from openprs.services.board import BoardService
from openprs.services.decision import DecisionService, decide, waiting_days
from openprs.services.sync import CsvReportJob, SyncService, base_document, fallback_category, run_forever
from openprs.telemetry import FileEventSink

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _pull(number: int, *, state: str = "open", draft: bool = False, closed_at=None, merged_at=None, login="alice"):
    return SimpleNamespace(
        id=1000 + number,
        number=number,
        title=f"PR {number}",
        body=None,
        state=state,
        draft=draft,
        user=SimpleNamespace(login=login),
        html_url=f"https://github.com/ethereum/EIPs/pull/{number}",
        labels=[SimpleNamespace(name="c-update")],
        mergeable_state="clean",
        created_at=datetime(2024, 1, number, tzinfo=timezone.utc),
        updated_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        closed_at=closed_at,
        merged_at=merged_at,
    )


class StubCollector:
    def __init__(self, pulls_by_repo: dict[str, list], failing: set[int] | None = None):
        self.pulls_by_repo = pulls_by_repo
        self.failing = failing or set()
        self.editor_loads = 0

    def load_editors(self, repo, path):
        self.editor_loads += 1
        return frozenset({"editor1"})

    def list_pulls(self, repo, state="all"):
        pulls = self.pulls_by_repo.get(repo, [])
        return [pull for pull in pulls if state == "all" or pull.state == state]

    def get_pull(self, repo, number):
        if number in self.failing:
            raise RuntimeError("GitHub unavailable")
        return next(pull for pull in self.pulls_by_repo[repo] if pull.number == number)

    def decision_inputs(self, repo, pull, editors):
        info = PullRequestInfo(
            number=pull.number,
            title=pull.title,
            opener_login=pull.user.login,
            created_at=pull.created_at,
            is_draft=pull.draft,
        )
        return DecisionInputs(pr=info, editors=editors)


def _store() -> RedisBoardStore:
    return RedisBoardStore(fakeredis.FakeRedis(decode_responses=True))


def test_fallback_category_and_base_document():
    assert fallback_category(True) == ("PR DRAFT", "")
    assert fallback_category(False) == ("Other", "")
    doc = base_document(_pull(3, state="closed", closed_at=datetime(2024, 1, 9, tzinfo=timezone.utc)), "EIP")
    assert doc.state is PullRequestState.CLOSED
    assert doc.labels == ["c-update"]
    assert doc.author == "alice"
    assert doc.category == "Other"


def test_run_repo_enriches_open_and_keeps_closed():
    pulls = [
        _pull(1),
        _pull(2, draft=True),
        _pull(3, state="closed", merged_at=datetime(2024, 1, 20, tzinfo=timezone.utc)),
        _pull(4),
    ]
    store = _store()
    service = SyncService(StubCollector({"ethereum/EIPs": pulls}, failing={4}), store, DecisionService(), concurrency=2)
    documents = service.run_repo("ethereum/EIPs", frozenset({"editor1"}), now=NOW)
    assert len(documents) == 4

    stored = {doc.number: doc for doc in store.list_pull_requests("eips")}
    assert stored[1].category == "Other"
    assert stored[1].subcategory == "Waiting on Editor"
    assert stored[2].category == "PR DRAFT"
    assert stored[2].subcategory == "AWAITED"
    assert stored[3].category == "Other"
    assert stored[3].subcategory == ""
    assert stored[4].category == "Other"
    assert stored[4].subcategory == ""


def test_board_wait_counts_from_creation_when_no_editor_has_acted():
    pull = _pull(1)
    pull.updated_at = datetime(2024, 2, 28, tzinfo=timezone.utc)
    collector = StubCollector({"ethereum/EIPs": [pull]})
    store = _store()
    SyncService(collector, store, DecisionService()).run_repo("ethereum/EIPs", frozenset({"editor1"}), now=NOW)

    stored = store.get_pull_request("eips", 1)
    assert stored.waiting_since == datetime(2024, 1, 1, tzinfo=timezone.utc)

    inputs = collector.decision_inputs("ethereum/EIPs", pull, frozenset({"editor1"}))
    expected = waiting_days(decide(inputs, now=NOW), inputs.pr.created_at, NOW)
    (row,) = BoardService(store).rows("eips", now=NOW)
    assert row.wait_time_days == expected == 60.0


def test_run_stores_everything_and_publishes(tmp_path):
    collector = StubCollector(
        {
            "ethereum/EIPs": [_pull(1), _pull(2, state="closed", closed_at=datetime(2024, 2, 2, tzinfo=timezone.utc))],
            "ethereum/ERCs": [_pull(5)],
        }
    )
    store = _store()
    events = tmp_path / "events.jsonl"
    service = SyncService(
        collector,
        store,
        DecisionService(),
        repos=["ethereum/EIPs", "ethereum/ERCs"],
        sink=FileEventSink(events),
    )
    assert service.run(now=NOW) == {"eips": 2, "ercs": 1}
    assert collector.editor_loads == 1

    assert [snapshot.month for snapshot in store.list_snapshots("eips")] == ["2024-01", "2024-02", "2024-03"]
    states = store.get_chart("eips", ChartKind.STATES)
    assert {point.type for point in states} == {"Created", "Merged", "Closed", "Open"}
    combined = store.get_chart("all", ChartKind.CATEGORY)
    assert all(point.series == "all" for point in combined)
    march = {point.type: point.count for point in combined if point.month_year == "2024-03"}
    assert march == {"Other": 2}
    assert store.get_last_sync()["sync_id"].startswith("sy_")

    published = json.loads(events.read_text().strip())
    assert published["event_type"] == "sync_completed"
    assert published["stored"] == {"eips": 2, "ercs": 1}


def test_csv_report_job_writes_partial_and_merged(tmp_path):
    collector = StubCollector(
        {
            "ethereum/EIPs": [_pull(1), _pull(2, state="closed")],
            "ethereum/ERCs": [_pull(7, login="carol")],
        }
    )
    seen: list[tuple[str, int]] = []
    job = CsvReportJob(collector, DecisionService(), on_result=lambda repo, row: seen.append((repo, row.pr_number)))
    output = job.run(["ethereum/EIPs", "not-a-repo", "ethereum/ERCs"], tmp_path / "out" / "prs.csv", now=NOW)

    assert (tmp_path / "out" / "ethereum-EIPs.csv").exists()
    assert (tmp_path / "out" / "ethereum-ERCs.csv").exists()
    lines = output.read_text().splitlines()
    assert lines[0].startswith("repo,pr_number,pr_url")
    assert len(lines) == 3
    assert seen == [("ethereum/EIPs", 1), ("ethereum/ERCs", 7)]


def test_run_forever_survives_failures_and_stops():
    stop = threading.Event()
    calls = {"count": 0}

    def job():
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("first run fails")
        stop.set()

    run_forever(job, 0.0, stop=stop)
    assert calls["count"] == 2
