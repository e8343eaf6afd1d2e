"""API schemas for board endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from openprs.models.board import BoardAggregation, BoardRow, ChartKind, ChartPoint


class BoardUsageResponse(BaseModel):
    """Response for GET /v1/boards."""

    specs: list[str]
    filters: dict[str, str]
    endpoints: list[str]


class BoardResponse(BaseModel):
    """Response for GET /v1/boards/{spec}."""

    spec: str
    total: int
    rows: list[BoardRow]
    request_id: str


class BoardAggregationResponse(BaseModel):
    """Response for GET /v1/boards/{spec}/aggregation."""

    spec: str
    aggregation: BoardAggregation
    request_id: str


class ChartResponse(BaseModel):
    """Response for GET /v1/boards/{spec}/charts/{kind}."""

    series: str = Field(..., description="Spec slug or 'all'.")
    kind: ChartKind
    points: list[ChartPoint]
    request_id: str
