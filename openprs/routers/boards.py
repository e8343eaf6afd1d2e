"""API routes for editor boards and charts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from openprs.core.config import settings
from openprs.core.exceptions import UnknownSpecError
from openprs.core.identifiers import new_request_id
from openprs.core.repos import SPEC_SLUGS, normalize_spec
from openprs.dependencies import get_board_service, get_store
from openprs.models.board import ChartKind
from openprs.repositories.redis_store import RedisBoardStore
from openprs.schemas.boards import (
    BoardAggregationResponse,
    BoardResponse,
    BoardUsageResponse,
    ChartResponse,
)
from openprs.services.board import SORT_CREATED, SORT_WAIT_TIME, BoardService
from openprs.services.snapshots import ALL_SERIES

router = APIRouter(prefix=f"{settings.api_v1_prefix}/boards", tags=["boards"])


def _unknown_spec(exc: UnknownSpecError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": str(exc), "allowed": list(exc.allowed)},
    )


@router.get("", response_model=BoardUsageResponse)
def describe_boards() -> BoardUsageResponse:
    return BoardUsageResponse(
        specs=list(SPEC_SLUGS),
        filters={
            "subcategory": "Waiting on Editor | Waiting on Author | Stagnant | AWAITED",
            "category": "PR DRAFT | Typo | New EIP | Status Change | Website | Tooling | EIP-1 | Other",
            "sort": f"{SORT_WAIT_TIME} (default) | {SORT_CREATED}",
        },
        endpoints=[
            f"{settings.api_v1_prefix}/boards/{{spec}}",
            f"{settings.api_v1_prefix}/boards/{{spec}}/aggregation?month=YYYY-MM",
            f"{settings.api_v1_prefix}/boards/{{spec}}/charts/{{kind}}",
        ],
    )


@router.get("/{spec}", response_model=BoardResponse)
def get_board(
    spec: str,
    subcategory: str | None = Query(None, description="Filter by subcategory, e.g. 'Waiting on Editor'."),
    category: str | None = Query(None, description="Filter by category, e.g. 'Typo'."),
    sort: str = Query(SORT_WAIT_TIME, description="waitTime (longest waiting first) or created."),
    board_service: BoardService = Depends(get_board_service),
) -> BoardResponse:
    try:
        rows = board_service.rows(spec, subcategory=subcategory, category=category, sort=sort)
    except UnknownSpecError as exc:
        raise _unknown_spec(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return BoardResponse(spec=spec.lower(), total=len(rows), rows=rows, request_id=new_request_id())


@router.get("/{spec}/aggregation", response_model=BoardAggregationResponse)
def get_board_aggregation(
    spec: str,
    month: str | None = Query(None, description="Month in YYYY-MM form; defaults to the current month."),
    board_service: BoardService = Depends(get_board_service),
) -> BoardAggregationResponse:
    try:
        aggregation = board_service.aggregation(spec, month)
    except UnknownSpecError as exc:
        raise _unknown_spec(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return BoardAggregationResponse(spec=spec.lower(), aggregation=aggregation, request_id=new_request_id())


@router.get("/{spec}/charts/{kind}", response_model=ChartResponse)
def get_chart(
    spec: str,
    kind: ChartKind,
    store: RedisBoardStore = Depends(get_store),
) -> ChartResponse:
    series = spec.strip().lower()
    if series != ALL_SERIES:
        try:
            series = normalize_spec(series)
        except UnknownSpecError as exc:
            raise _unknown_spec(exc) from exc
    return ChartResponse(series=series, kind=kind, points=store.get_chart(series, kind), request_id=new_request_id())
