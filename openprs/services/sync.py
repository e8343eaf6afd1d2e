"""Import job, CSV report job and the periodic scheduler."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Sequence

from openprs.core.identifiers import new_sync_id
from openprs.core.repos import SPEC_REPOS, spec_for_repo
from openprs.github.collector import GitHubActivityCollector
from openprs.models.board import ChartKind, PullRequestDocument, PullRequestState
from openprs.models.domain import parse_timestamp
from openprs.repositories.redis_store import RedisBoardStore
from openprs.services.decision import DecisionService, resolve_waiting_since
from openprs.services.export import CsvRow, build_csv_row, merge_csv_files, write_csv
from openprs.services.snapshots import (
    ALL_SERIES,
    build_monthly_snapshots,
    category_counts,
    category_subcategory_counts,
    merge_chart_points,
    state_counts,
    subcategory_counts,
)
from openprs.telemetry import EventSink, NullEventSink, record_enrichment_failure, record_synced_pull_requests

_logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0

_CHART_BUILDERS = {
    ChartKind.CATEGORY: category_counts,
    ChartKind.SUBCATEGORY: subcategory_counts,
    ChartKind.CATEGORY_SUBCATEGORY: category_subcategory_counts,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def fallback_category(draft: bool) -> tuple[str, str]:
    """Category for closed pull requests and for open ones whose enrichment failed."""

    return ("PR DRAFT" if draft else "Other"), ""


def base_document(pull, spec_type: str) -> PullRequestDocument:
    user = getattr(pull, "user", None)
    draft = bool(getattr(pull, "draft", False))
    category, subcategory = fallback_category(draft)
    return PullRequestDocument(
        pr_id=getattr(pull, "id", None),
        number=pull.number,
        title=pull.title or "",
        author=getattr(user, "login", None) or "",
        pr_url=getattr(pull, "html_url", None) or "",
        labels=[label.name or "" for label in (getattr(pull, "labels", None) or [])],
        state=PullRequestState.OPEN if pull.state == "open" else PullRequestState.CLOSED,
        mergeable_state=getattr(pull, "mergeable_state", None),
        created_at=pull.created_at,
        updated_at=getattr(pull, "updated_at", None),
        closed_at=getattr(pull, "closed_at", None),
        merged_at=getattr(pull, "merged_at", None),
        spec_type=spec_type,
        draft=draft,
        category=category,
        subcategory=subcategory,
    )


class SyncService:
    """Imports every pull request of the tracked repositories and refreshes reporting data."""

    def __init__(
        self,
        collector: GitHubActivityCollector,
        store: RedisBoardStore,
        decisions: DecisionService,
        *,
        repos: Sequence[str] | None = None,
        editor_config_repo: str = "ethereum/EIPs",
        editor_config_path: str = "config/eip-editors.yml",
        concurrency: int = 4,
        sink: EventSink | None = None,
    ) -> None:
        self._collector = collector
        self._store = store
        self._decisions = decisions
        self._repos = list(repos) if repos else [repo.full_name for repo in SPEC_REPOS]
        self._editor_config_repo = editor_config_repo
        self._editor_config_path = editor_config_path
        self._concurrency = max(concurrency, 1)
        self._sink = sink or NullEventSink()

    def run(self, now: datetime | None = None) -> dict[str, int]:
        now = now or _now()
        sync_id = new_sync_id()
        _logger.info("Sync %s started for %s", sync_id, ", ".join(self._repos))
        editors = self._collector.load_editors(self._editor_config_repo, self._editor_config_path)

        stored: dict[str, int] = {}
        for repo_full_name in self._repos:
            documents = self.run_repo(repo_full_name, editors, now=now)
            stored[spec_for_repo(repo_full_name).slug] = len(documents)
        self.refresh_reporting(list(stored), now=now)

        finished_at = _now().isoformat()
        self._store.set_last_sync(sync_id, finished_at)
        self._sink.publish(
            {"event_type": "sync_completed", "sync_id": sync_id, "timestamp": finished_at, "stored": stored}
        )
        _logger.info("Sync %s finished: %s", sync_id, stored)
        return stored

    def run_repo(
        self,
        repo_full_name: str,
        editors: frozenset[str],
        *,
        now: datetime | None = None,
    ) -> list[PullRequestDocument]:
        now = now or _now()
        spec = spec_for_repo(repo_full_name)
        pulls = self._collector.list_pulls(repo_full_name, state="all")
        _logger.info(
            "[%s] Fetched %d pull requests; enriching open ones with concurrency %d",
            repo_full_name,
            len(pulls),
            self._concurrency,
        )

        documents: list[PullRequestDocument] = []
        open_pulls: list[tuple[object, PullRequestDocument]] = []
        for pull in pulls:
            document = base_document(pull, spec.spec_type)
            if document.state is PullRequestState.OPEN:
                open_pulls.append((pull, document))
            else:
                documents.append(document)

        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
            enriched = executor.map(
                lambda item: self._enrich(repo_full_name, item[0], item[1], editors, now),
                open_pulls,
            )
            documents.extend(enriched)

        self._store.replace_pull_requests(spec.slug, documents)
        record_synced_pull_requests(repo_full_name, len(documents))
        _logger.info("[%s] Stored %d pull requests", repo_full_name, len(documents))
        return documents

    def _enrich(
        self,
        repo_full_name: str,
        pull,
        document: PullRequestDocument,
        editors: frozenset[str],
        now: datetime,
    ) -> PullRequestDocument:
        try:
            detailed = self._collector.get_pull(repo_full_name, pull.number)
            inputs = self._collector.decision_inputs(repo_full_name, detailed, editors)
            result = self._decisions.decide(inputs, repo=repo_full_name, now=now)
        except Exception as exc:
            _logger.warning("[%s] PR #%s enrich failed: %s", repo_full_name, pull.number, exc)
            record_enrichment_failure(repo_full_name)
            return document
        return document.model_copy(
            update={
                "mergeable_state": getattr(detailed, "mergeable_state", None) or document.mergeable_state,
                "category": result.category,
                "subcategory": result.subcategory,
                "waiting_since": parse_timestamp(resolve_waiting_since(result, inputs.pr.created_at)),
            }
        )

    def refresh_reporting(self, specs: Iterable[str], *, now: datetime | None = None) -> None:
        """Rebuild monthly snapshots and every chart series, plus the combined ``all`` series."""

        now = now or _now()
        combined: dict[ChartKind, list] = {kind: [] for kind in ChartKind}
        for spec in specs:
            documents = self._store.list_pull_requests(spec)
            snapshots = build_monthly_snapshots(documents, now)
            self._store.replace_snapshots(spec, snapshots)

            series = {ChartKind.STATES: state_counts(documents, spec)}
            for kind, builder in _CHART_BUILDERS.items():
                series[kind] = builder(snapshots, spec)
            for kind, points in series.items():
                self._store.replace_chart(spec, kind, points)
                combined[kind].append(points)
            _logger.info("[%s] Stored %d snapshots", spec, len(snapshots))

        for kind, per_spec in combined.items():
            self._store.replace_chart(ALL_SERIES, kind, merge_chart_points(*per_spec))


class CsvReportJob:
    """Analyses open pull requests and writes per-repository and merged CSV files."""

    def __init__(
        self,
        collector: GitHubActivityCollector,
        decisions: DecisionService,
        *,
        editor_config_repo: str = "ethereum/EIPs",
        editor_config_path: str = "config/eip-editors.yml",
        on_result: Callable[[str, CsvRow], None] | None = None,
    ) -> None:
        self._collector = collector
        self._decisions = decisions
        self._editor_config_repo = editor_config_repo
        self._editor_config_path = editor_config_path
        self._on_result = on_result

    def run(self, repos: Sequence[str], output_csv: str | Path, *, now: datetime | None = None) -> Path:
        now = now or _now()
        editors = self._collector.load_editors(self._editor_config_repo, self._editor_config_path)
        output = Path(output_csv)
        partial_paths: list[Path] = []
        for repo_full_name in repos:
            if repo_full_name.count("/") != 1:
                _logger.warning("Skipping invalid repo identifier: %s", repo_full_name)
                continue
            rows = self.analyze_repo(repo_full_name, editors, now=now)
            partial = output.parent / f"{repo_full_name.replace('/', '-')}.csv"
            write_csv(rows, partial)
            partial_paths.append(partial)
            _logger.info("Saved %d PRs to %s", len(rows), partial)
        merge_csv_files(partial_paths, output)
        _logger.info("Merged %d repo(s) into %s", len(partial_paths), output)
        return output

    def analyze_repo(self, repo_full_name: str, editors: frozenset[str], *, now: datetime) -> list[CsvRow]:
        rows: list[CsvRow] = []
        for pull in self._collector.list_pulls(repo_full_name, state="open"):
            detailed = self._collector.get_pull(repo_full_name, pull.number)
            inputs = self._collector.decision_inputs(repo_full_name, detailed, editors)
            result = self._decisions.decide(inputs, repo=repo_full_name, now=now)
            row = build_csv_row(repo_full_name, getattr(detailed, "html_url", "") or "", inputs.pr, result, now)
            rows.append(row)
            if self._on_result is not None:
                self._on_result(repo_full_name, row)
        return rows


def run_forever(
    job: Callable[[], object],
    interval_hours: float,
    *,
    stop: threading.Event | None = None,
) -> None:
    """Run ``job`` now and then every ``interval_hours`` until ``stop`` is set."""

    stop = stop or threading.Event()
    interval = interval_hours * SECONDS_PER_HOUR
    _logger.info("Scheduler started; interval %.2fh", interval_hours)
    while not stop.is_set():
        try:
            job()
        except Exception:
            _logger.exception("Scheduled sync failed")
        if stop.wait(interval):
            break
