"""Monthly open-PR snapshots and the chart series derived from them.

State counts (created, merged, closed, open) are computed from every stored
pull request. Category and subcategory counts come from the latest snapshot
of each month so that charts agree with the snapshot contents.
"""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Sequence

from openprs.models.board import ChartPoint, PullRequestDocument, Snapshot

UNCATEGORIZED = "Uncategorized"
CATEGORY_SUBCATEGORY_SEPARATOR = "|"
ALL_SERIES = "all"
STATE_TYPES = ("Created", "Merged", "Closed", "Open")


def _utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _month_key(value: datetime) -> str:
    return _utc(value).strftime("%Y-%m")


def _month_bounds(month: str) -> tuple[datetime, datetime]:
    year, month_number = (int(part) for part in month.split("-"))
    last_day = calendar.monthrange(year, month_number)[1]
    start = datetime(year, month_number, 1, tzinfo=timezone.utc)
    end = datetime(year, month_number, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def _months_between(first: datetime, last: datetime) -> list[str]:
    months: list[str] = []
    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        months.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def is_open_at(doc: PullRequestDocument, moment: datetime) -> bool:
    if _utc(doc.created_at) > moment:
        return False
    merged_at = _utc(doc.merged_at)
    if merged_at is not None and merged_at <= moment:
        return False
    closed_at = _utc(doc.closed_at)
    if closed_at is not None and closed_at <= moment:
        return False
    return True


def build_monthly_snapshots(documents: Sequence[PullRequestDocument], now: datetime) -> list[Snapshot]:
    if not documents:
        return []
    first = min(_utc(doc.created_at) for doc in documents)
    snapshots: list[Snapshot] = []
    for month in _months_between(first, _utc(now)):
        _, month_end = _month_bounds(month)
        snapshots.append(
            Snapshot(
                month=month,
                snapshot_date=month_end.strftime("%Y-%m-%d"),
                prs=[doc for doc in documents if is_open_at(doc, month_end)],
            )
        )
    return snapshots


def state_counts(documents: Sequence[PullRequestDocument], series: str) -> list[ChartPoint]:
    months: set[str] = set()
    for doc in documents:
        months.add(_month_key(doc.created_at))
        if doc.closed_at:
            months.add(_month_key(doc.closed_at))
        if doc.merged_at:
            months.add(_month_key(doc.merged_at))

    points: list[ChartPoint] = []
    for month in sorted(months, reverse=True):
        start, end = _month_bounds(month)
        counts = Counter({state: 0 for state in STATE_TYPES})
        for doc in documents:
            created = _utc(doc.created_at)
            merged = _utc(doc.merged_at)
            closed = _utc(doc.closed_at)
            if start <= created <= end:
                counts["Created"] += 1
            if merged is not None and start <= merged <= end:
                counts["Merged"] += 1
            if closed is not None and merged is None and start <= closed <= end:
                counts["Closed"] += 1
            if is_open_at(doc, end):
                counts["Open"] += 1
        points.extend(
            ChartPoint(series=series, month_year=month, type=state, count=counts[state]) for state in STATE_TYPES
        )
    return points


def latest_snapshot_per_month(snapshots: Iterable[Snapshot]) -> list[Snapshot]:
    latest: dict[str, Snapshot] = {}
    for snapshot in sorted(snapshots, key=lambda item: item.snapshot_date, reverse=True):
        latest.setdefault(snapshot.month, snapshot)
    return [latest[month] for month in sorted(latest)]


def _subcategory_label(doc: PullRequestDocument) -> str:
    return doc.subcategory or UNCATEGORIZED


def _counts_from_snapshots(snapshots: Iterable[Snapshot], series: str, label) -> list[ChartPoint]:
    points: list[ChartPoint] = []
    for snapshot in latest_snapshot_per_month(snapshots):
        counts = Counter(label(doc) for doc in snapshot.prs)
        points.extend(
            ChartPoint(series=series, month_year=snapshot.month, type=name, count=count)
            for name, count in counts.items()
            if count > 0
        )
    points.sort(key=lambda point: (point.month_year, point.count), reverse=True)
    return points


def category_counts(snapshots: Iterable[Snapshot], series: str) -> list[ChartPoint]:
    return _counts_from_snapshots(snapshots, series, lambda doc: doc.category or "Other")


def subcategory_counts(snapshots: Iterable[Snapshot], series: str) -> list[ChartPoint]:
    return _counts_from_snapshots(snapshots, series, _subcategory_label)


def category_subcategory_counts(snapshots: Iterable[Snapshot], series: str) -> list[ChartPoint]:
    return _counts_from_snapshots(
        snapshots,
        series,
        lambda doc: f"{doc.category or 'Other'}{CATEGORY_SUBCATEGORY_SEPARATOR}{_subcategory_label(doc)}",
    )


def merge_chart_points(*series_points: Iterable[ChartPoint], series: str = ALL_SERIES) -> list[ChartPoint]:
    """Sum counts across spec series by month and type."""

    totals: Counter[tuple[str, str]] = Counter()
    for points in series_points:
        for point in points:
            totals[(point.month_year, point.type)] += point.count
    merged = [
        ChartPoint(series=series, month_year=month, type=kind, count=count)
        for (month, kind), count in totals.items()
    ]
    merged.sort(key=lambda point: (point.month_year, point.count), reverse=True)
    return merged
