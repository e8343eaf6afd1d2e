"""API schemas for on-demand decisions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from openprs.models.domain import CategorizedResult, DecisionInputs


class DecisionRequest(BaseModel):
    """Payload for POST /v1/decisions."""

    repo: Optional[str] = Field(None, description="Repository the pull request belongs to, e.g. ethereum/EIPs.")
    inputs: DecisionInputs
    days_since_last_activity: Optional[float] = Field(
        None, description="Overrides the activity age measured against `now`."
    )
    now: Optional[datetime] = Field(None, description="Reference time; defaults to the server clock.")


class DecisionResponse(BaseModel):
    result: CategorizedResult
    waiting_since: Optional[str] = Field(
        None, description="Waiting start with PR creation substituted when no editor has acted."
    )
    request_id: str
