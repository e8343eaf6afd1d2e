"""API route for running the decision engine on supplied inputs."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from openprs.core.config import settings
from openprs.core.identifiers import new_request_id
from openprs.dependencies import get_decision_service
from openprs.schemas.decisions import DecisionRequest, DecisionResponse
from openprs.services.decision import DecisionService, resolve_waiting_since

router = APIRouter(prefix=f"{settings.api_v1_prefix}/decisions", tags=["decisions"])


@router.post("", response_model=DecisionResponse)
def create_decision(
    request: DecisionRequest,
    decision_service: DecisionService = Depends(get_decision_service),
) -> DecisionResponse:
    result = decision_service.decide(
        request.inputs,
        repo=request.repo,
        days_since_last_activity=request.days_since_last_activity,
        now=request.now,
    )
    return DecisionResponse(
        result=result,
        waiting_since=resolve_waiting_since(result, request.inputs.pr.created_at),
        request_id=new_request_id(),
    )
