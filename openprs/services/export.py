"""CSV export of per pull request decisions."""

from __future__ import annotations

import csv
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence

from openprs.models.domain import CategorizedResult, PullRequestInfo
from openprs.services.decision import days_between, resolve_waiting_since

CSV_COLUMNS = (
    "repo",
    "pr_number",
    "pr_url",
    "pr_title",
    "created_at",
    "days_open",
    "needs_editor_attention",
    "waiting_since",
    "waiting_days",
    "primary_reason",
    "last_editor_action_date",
    "last_author_action_date",
    "category",
    "subcategory",
)


@dataclass
class CsvRow:
    repo: str
    pr_number: int
    pr_url: str
    pr_title: str
    created_at: str
    days_open: float
    needs_editor_attention: bool
    waiting_since: Optional[str]
    waiting_days: Optional[float]
    primary_reason: str
    last_editor_action_date: Optional[str]
    last_author_action_date: Optional[str]
    category: str = ""
    subcategory: str = ""


def build_csv_row(
    repo: str,
    pr_url: str,
    pr: PullRequestInfo,
    result: CategorizedResult,
    now: datetime,
) -> CsvRow:
    waiting_since = resolve_waiting_since(result, pr.created_at)
    waited = days_between(waiting_since, now)
    return CsvRow(
        repo=repo,
        pr_number=pr.number,
        pr_url=pr_url,
        pr_title=pr.title,
        created_at=pr.created_at,
        days_open=round(days_between(pr.created_at, now) or 0.0, 2),
        needs_editor_attention=result.needs_editor_attention,
        waiting_since=waiting_since,
        waiting_days=round(waited, 2) if waited is not None else None,
        primary_reason=result.reason,
        last_editor_action_date=result.last_editor_action.date if result.last_editor_action else None,
        last_author_action_date=result.last_author_action.date if result.last_author_action else None,
        category=result.category,
        subcategory=result.subcategory,
    )


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def write_csv(rows: Iterable[CsvRow], output_path: str | Path) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for row in rows:
            values = asdict(row)
            writer.writerow([_cell(values[column]) for column in CSV_COLUMNS])
    return path


def merge_csv_files(paths: Sequence[str | Path], output_path: str | Path) -> Path:
    """Concatenate CSV files sharing one header; the first header is kept."""

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    header_written = False
    with output.open("w", encoding="utf-8", newline="") as target:
        writer = csv.writer(target, lineterminator="\n")
        for source in paths:
            source_path = Path(source)
            if not source_path.exists():
                continue
            with source_path.open("r", encoding="utf-8", newline="") as handle:
                reader = csv.reader(handle)
                header = next(reader, None)
                if header is None:
                    continue
                if not header_written:
                    writer.writerow(header)
                    header_written = True
                for record in reader:
                    writer.writerow(record)
    return output
