from datetime import datetime, timezone

from openprs.models.board import ChartPoint, PullRequestDocument, PullRequestState, Snapshot
from openprs.services.snapshots import (
    build_monthly_snapshots,
    category_counts,
    category_subcategory_counts,
    is_open_at,
    latest_snapshot_per_month,
    merge_chart_points,
    state_counts,
    subcategory_counts,
)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _doc(number: int, created: datetime, *, closed=None, merged=None, **fields) -> PullRequestDocument:
    return PullRequestDocument(
        number=number,
        state=PullRequestState.CLOSED if closed or merged else PullRequestState.OPEN,
        created_at=created,
        closed_at=closed,
        merged_at=merged,
        spec_type="EIP",
        **fields,
    )


DOCS = [
    _doc(1, _utc(2024, 1, 5), category="Typo", subcategory="Waiting on Editor"),
    _doc(2, _utc(2024, 1, 20), merged=_utc(2024, 2, 3), closed=_utc(2024, 2, 3)),
    _doc(3, _utc(2024, 2, 14), closed=_utc(2024, 2, 15)),
    _doc(4, _utc(2024, 2, 28), category="New EIP", subcategory=""),
]


def test_is_open_at_respects_close_and_merge():
    assert is_open_at(DOCS[1], _utc(2024, 1, 31, 23, 59))
    assert not is_open_at(DOCS[1], _utc(2024, 2, 29))
    assert not is_open_at(DOCS[0], _utc(2024, 1, 1))


def test_monthly_snapshots_cover_first_month_to_now():
    snapshots = build_monthly_snapshots(DOCS, _utc(2024, 3, 10))
    assert [snapshot.month for snapshot in snapshots] == ["2024-01", "2024-02", "2024-03"]
    assert [snapshot.snapshot_date for snapshot in snapshots] == ["2024-01-31", "2024-02-29", "2024-03-31"]
    assert [doc.number for doc in snapshots[0].prs] == [1, 2]
    assert [doc.number for doc in snapshots[1].prs] == [1, 4]
    assert build_monthly_snapshots([], _utc(2024, 3, 10)) == []


def test_state_counts_per_month_descending():
    points = state_counts(DOCS, "eips")
    by_key = {(point.month_year, point.type): point.count for point in points}
    assert [point.month_year for point in points][:4] == ["2024-02"] * 4
    assert by_key[("2024-01", "Created")] == 2
    assert by_key[("2024-01", "Open")] == 2
    assert by_key[("2024-02", "Created")] == 2
    assert by_key[("2024-02", "Merged")] == 1
    assert by_key[("2024-02", "Closed")] == 1
    assert by_key[("2024-02", "Open")] == 2
    assert all(point.series == "eips" for point in points)


def test_latest_snapshot_wins_per_month():
    older = Snapshot(month="2024-02", snapshot_date="2024-02-10", prs=[DOCS[0]])
    newer = Snapshot(month="2024-02", snapshot_date="2024-02-29", prs=[DOCS[0], DOCS[3]])
    january = Snapshot(month="2024-01", snapshot_date="2024-01-31", prs=[])
    assert latest_snapshot_per_month([older, january, newer]) == [january, newer]


def test_category_and_subcategory_series():
    snapshots = build_monthly_snapshots(DOCS, _utc(2024, 2, 29))
    february = {(point.type, point.count) for point in category_counts(snapshots, "eips") if point.month_year == "2024-02"}
    assert february == {("Typo", 1), ("New EIP", 1)}

    subcategories = {(point.month_year, point.type): point.count for point in subcategory_counts(snapshots, "eips")}
    assert subcategories[("2024-02", "Uncategorized")] == 1
    assert subcategories[("2024-01", "Uncategorized")] == 1

    combined = {
        (point.month_year, point.type): point.count for point in category_subcategory_counts(snapshots, "eips")
    }
    assert combined[("2024-02", "Typo|Waiting on Editor")] == 1
    assert combined[("2024-01", "Other|Uncategorized")] == 1


def test_merge_chart_points_sums_series():
    eips = [ChartPoint(series="eips", month_year="2024-02", type="Open", count=3)]
    ercs = [
        ChartPoint(series="ercs", month_year="2024-02", type="Open", count=2),
        ChartPoint(series="ercs", month_year="2024-01", type="Open", count=1),
    ]
    merged = merge_chart_points(eips, ercs)
    assert merged == [
        ChartPoint(series="all", month_year="2024-02", type="Open", count=5),
        ChartPoint(series="all", month_year="2024-01", type="Open", count=1),
    ]
