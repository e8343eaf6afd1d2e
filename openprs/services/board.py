"""Board views over stored open pull requests."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from openprs.core.repos import normalize_spec
from openprs.models.board import (
    BoardAggregation,
    BoardAggregationBucket,
    BoardRow,
    PullRequestDocument,
    PullRequestState,
)
from openprs.repositories.redis_store import RedisBoardStore

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
SORT_WAIT_TIME = "waitTime"
SORT_CREATED = "created"
UNKNOWN_PARTICIPANT = "(unknown)"
DEFAULT_CATEGORY = "Other"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def month_key(value: datetime) -> str:
    return _aware(value).astimezone(timezone.utc).strftime("%Y-%m")


def wait_time_days(doc: PullRequestDocument, now: datetime) -> float | None:
    reference = _aware(doc.waiting_since or doc.updated_at or doc.created_at)
    if reference is None:
        return None
    return (now - reference).total_seconds() / 86400.0


def _row(doc: PullRequestDocument, index: int, now: datetime) -> BoardRow:
    waited = wait_time_days(doc, now)
    return BoardRow(
        index=index,
        number=doc.number,
        title=doc.title,
        author=doc.author,
        created_at=doc.created_at,
        wait_time_days=round(waited, 1) if waited is not None else None,
        category=doc.category or DEFAULT_CATEGORY,
        subcategory=doc.subcategory,
        labels=list(doc.labels),
        pr_url=doc.pr_url,
        spec_type=doc.spec_type,
    )


def _by_wait_time(documents: Iterable[PullRequestDocument], now: datetime) -> list[PullRequestDocument]:
    def key(doc: PullRequestDocument) -> float:
        waited = wait_time_days(doc, now)
        return waited if waited is not None else -1.0

    return sorted(documents, key=key, reverse=True)


class BoardService:
    """Builds board rows and monthly aggregations for one spec type at a time."""

    def __init__(self, store: RedisBoardStore) -> None:
        self._store = store

    def rows(
        self,
        spec: str,
        *,
        subcategory: Optional[str] = None,
        category: Optional[str] = None,
        sort: str = SORT_WAIT_TIME,
        now: datetime | None = None,
    ) -> list[BoardRow]:
        if sort not in (SORT_WAIT_TIME, SORT_CREATED):
            raise ValueError(f"Unsupported sort '{sort}'; use {SORT_WAIT_TIME} or {SORT_CREATED}")
        now = now or _now()
        documents = self._store.list_pull_requests(normalize_spec(spec), PullRequestState.OPEN)
        if subcategory:
            documents = [doc for doc in documents if doc.subcategory == subcategory]
        if category:
            documents = [doc for doc in documents if doc.category == category]
        if sort == SORT_CREATED:
            documents.sort(key=lambda doc: _aware(doc.created_at))
        else:
            documents = _by_wait_time(documents, now)
        return [_row(doc, index, now) for index, doc in enumerate(documents, start=1)]

    def aggregation(
        self,
        spec: str,
        month_year: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> BoardAggregation:
        """Open pull requests created or updated in ``month_year`` (default: current month)."""

        now = now or _now()
        if month_year is None:
            month_year = month_key(now)
        elif not MONTH_PATTERN.match(month_year):
            raise ValueError(f"Invalid month '{month_year}'; expected YYYY-MM")

        documents = [
            doc
            for doc in self._store.list_pull_requests(normalize_spec(spec), PullRequestState.OPEN)
            if month_key(doc.created_at) == month_year
            or (doc.updated_at is not None and month_key(doc.updated_at) == month_year)
        ]
        rows = [_row(doc, index, now) for index, doc in enumerate(_by_wait_time(documents, now), start=1)]

        by_category: dict[str, list[BoardRow]] = {}
        by_participant: dict[str, list[BoardRow]] = {}
        for row in rows:
            by_category.setdefault(row.category or DEFAULT_CATEGORY, []).append(row)
            by_participant.setdefault(row.author or UNKNOWN_PARTICIPANT, []).append(row)

        return BoardAggregation(
            month_year=month_year,
            categories=[
                BoardAggregationBucket(name=name, count=len(members), prs=members)
                for name, members in by_category.items()
            ],
            participants=[
                BoardAggregationBucket(name=name, count=len(members), prs=members)
                for name, members in by_participant.items()
            ],
        )
