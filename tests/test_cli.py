from __future__ import annotations

import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

import openprs.dependencies as dependencies
from openprs import cli
from openprs.core.exceptions import EditorConfigError
from openprs.models.domain import DecisionInputs, PullRequestInfo
from openprs.services.decision import DecisionService


class StubCollector:
    def __init__(self):
        self.pull = SimpleNamespace(
            number=3,
            title="Fix typo",
            state="open",
            html_url="https://github.com/ethereum/EIPs/pull/3",
            user=SimpleNamespace(login="alice"),
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    def load_editors(self, repo, path):
        return frozenset({"editor1"})

    def list_pulls(self, repo, state="all"):
        return [self.pull]

    def get_pull(self, repo, number):
        return self.pull

    def decision_inputs(self, repo, pull, editors):
        info = PullRequestInfo(
            number=pull.number,
            title=pull.title,
            opener_login=pull.user.login,
            created_at=pull.created_at,
            changed_files=1,
            additions=1,
            deletions=1,
        )
        return DecisionInputs(pr=info, editors=editors)


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_analyze_prints_rows_and_writes_csv(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(dependencies, "get_collector", lambda: StubCollector())
    monkeypatch.setattr(dependencies, "get_decision_service", lambda: DecisionService())
    output = tmp_path / "report.csv"

    assert cli.main(["analyze", "--repo", "ethereum/EIPs", "--csv", str(output)]) == 0

    lines = capsys.readouterr().out.splitlines()
    row = json.loads(lines[0])
    assert row["repo"] == "ethereum/EIPs"
    assert row["pr_number"] == 3
    assert row["category"] == "Typo"
    assert lines[-1] == f"Merged report written to {output}"
    assert len(output.read_text().splitlines()) == 2
    assert (tmp_path / "ethereum-EIPs.csv").exists()


def test_analyze_quiet(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(dependencies, "get_collector", lambda: StubCollector())
    monkeypatch.setattr(dependencies, "get_decision_service", lambda: DecisionService())
    assert cli.main(["analyze", "--quiet", "--repo", "ethereum/EIPs", "--csv", str(tmp_path / "r.csv")]) == 0
    assert capsys.readouterr().out.startswith("Merged report written to")


def test_sync_once_runs_single_pass(monkeypatch):
    calls = []
    monkeypatch.setattr(dependencies, "get_sync_service", lambda: SimpleNamespace(run=lambda: calls.append("run")))
    assert cli.main(["sync", "--once"]) == 0
    assert calls == ["run"]


def test_sync_loop_clamps_interval(monkeypatch):
    captured = {}
    monkeypatch.setattr(dependencies, "get_sync_service", lambda: SimpleNamespace(run=lambda: None))
    monkeypatch.setattr(
        "openprs.services.sync.run_forever",
        lambda job, interval_hours: captured.setdefault("interval", interval_hours),
    )
    assert cli.main(["sync", "--interval-hours", "0.01"]) == 0
    assert captured["interval"] == 0.25


def test_service_errors_exit_non_zero(monkeypatch):
    def broken():
        raise EditorConfigError("roster missing")

    monkeypatch.setattr(dependencies, "get_sync_service", broken)
    assert cli.main(["sync", "--once"]) == 1
