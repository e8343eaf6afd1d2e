"""Stored pull request documents, board rows, snapshots and chart series."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ChartKind(str, Enum):
    """Stored chart series per specification type."""

    STATES = "states"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"
    CATEGORY_SUBCATEGORY = "category_subcategory"


class PullRequestDocument(BaseModel):
    """One pull request as persisted by the import job."""

    pr_id: Optional[int] = None
    number: int
    title: str = ""
    author: str = ""
    pr_url: str = ""
    labels: list[str] = Field(default_factory=list)
    state: PullRequestState
    mergeable_state: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    spec_type: str
    draft: bool = False
    category: str = "Other"
    subcategory: str = ""
    waiting_since: Optional[datetime] = Field(
        None, description="When the current waiting state began; drives board wait times."
    )


class BoardRow(BaseModel):
    index: int
    number: int
    title: str
    author: str
    created_at: datetime
    wait_time_days: Optional[float] = None
    category: str
    subcategory: str
    labels: list[str] = Field(default_factory=list)
    pr_url: str
    spec_type: str


class BoardAggregationBucket(BaseModel):
    name: str
    count: int
    prs: list[BoardRow] = Field(default_factory=list)


class BoardAggregation(BaseModel):
    """Open pull requests touched in one month, grouped two ways."""

    month_year: str = Field(..., description="Month key in YYYY-MM form.")
    categories: list[BoardAggregationBucket] = Field(default_factory=list)
    participants: list[BoardAggregationBucket] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Pull requests open at the end of one month."""

    month: str
    snapshot_date: str
    prs: list[PullRequestDocument] = Field(default_factory=list)


class ChartPoint(BaseModel):
    series: str = Field(..., description="Spec slug (eips, ercs, rips) or 'all'.")
    month_year: str
    type: str
    count: int
