"""Domain data models for the pull request attention engine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 value into an aware UTC datetime, or ``None`` when unusable."""

    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def canonical_timestamp(value: str | datetime | None) -> str | None:
    """Normalise to ``YYYY-MM-DDTHH:MM:SSZ`` so string order matches time order.

    Sub-second precision is dropped, so events within the same second compare as ties.
    GitHub reports activity timestamps in whole seconds.
    """

    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.strftime(TIMESTAMP_FORMAT)


class EventSource(str, Enum):
    """Kind of activity a record or timeline event came from."""

    PR_OPENED = "PR_OPENED"
    COMMIT = "COMMIT"
    ISSUE_COMMENT = "ISSUE_COMMENT"
    REVIEW_COMMENT = "REVIEW_COMMENT"
    REVIEW_APPROVED = "REVIEW_APPROVED"
    REVIEW_CHANGES_REQUESTED = "REVIEW_CHANGES_REQUESTED"
    REVIEW_COMMENTED = "REVIEW_COMMENTED"


class ActorRole(str, Enum):
    """Role of an actor relative to a pull request."""

    EDITOR = "EDITOR"
    AUTHOR = "AUTHOR"
    NONE = "NONE"
    UNUSABLE = "UNUSABLE"


class FileStatus(str, Enum):
    """Change status of a file in a pull request diff."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


class PRType(str, Enum):
    """Mutually exclusive pull request classification."""

    DRAFT = "DRAFT"
    TYPO = "TYPO"
    NEW_EIP = "NEW_EIP"
    STATUS_CHANGE = "STATUS_CHANGE"
    WEBSITE = "WEBSITE"
    TOOLING = "TOOLING"
    EIP_1 = "EIP_1"
    OTHER = "OTHER"


class Subcategory(str, Enum):
    """Waiting-state bucket used for reporting."""

    AWAITED = "AWAITED"
    STAGNANT = "Stagnant"
    WAITING_ON_EDITOR = "Waiting on Editor"
    WAITING_ON_AUTHOR = "Waiting on Author"


class ActivityRecord(BaseModel):
    """One observed action on a pull request before role resolution."""

    model_config = ConfigDict(frozen=True)

    actor_login: Optional[str] = Field(None, description="Login of the acting account; null when deleted.")
    source: EventSource
    timestamp: Optional[str] = Field(
        None, description="Primary time: review submission, commit author date, or comment creation."
    )
    fallback_timestamp: Optional[str] = Field(
        None, description="Secondary time: review creation or commit committer date."
    )

    @field_validator("timestamp", "fallback_timestamp", mode="before")
    @classmethod
    def _normalise_timestamp(cls, value):
        if value is None:
            return None
        if not isinstance(value, (str, datetime)):
            return None
        return canonical_timestamp(value)


class TimelineEvent(BaseModel):
    """An activity record attributed to an editor or an author."""

    model_config = ConfigDict(frozen=True)

    actor: str
    role: ActorRole
    source: EventSource
    timestamp: str

    @field_validator("role")
    @classmethod
    def _attributed_role(cls, value: ActorRole) -> ActorRole:
        if value not in (ActorRole.EDITOR, ActorRole.AUTHOR):
            raise ValueError("timeline events carry only EDITOR or AUTHOR roles")
        return value


class FileChange(BaseModel):
    """A file touched by a pull request."""

    model_config = ConfigDict(frozen=True)

    filename: str
    status: FileStatus
    additions: Optional[int] = None
    deletions: Optional[int] = None
    preamble_status_changed_only: bool = Field(
        False, description="True when the only difference between base and head is the preamble status."
    )


class ActionSummary(BaseModel):
    """Latest action of one party; editor actions carry the actor login."""

    model_config = ConfigDict(frozen=True)

    type: EventSource
    date: str
    actor: Optional[str] = None


class AnalysisResult(BaseModel):
    """Waiting-state outcome of a pull request timeline."""

    model_config = ConfigDict(frozen=True)

    needs_editor_attention: bool
    waiting_since: Optional[str] = None
    last_editor_action: Optional[ActionSummary] = None
    last_author_action: Optional[ActionSummary] = None
    reason: str


class PRClassification(BaseModel):
    """Type assigned to a pull request plus opener facts used downstream."""

    model_config = ConfigDict(frozen=True)

    type: PRType
    is_created_by_bot: bool = False
    opened_by_preamble_author: Optional[bool] = None


class CategorizedResult(AnalysisResult):
    """Analysis result with its reporting bucket attached."""

    category: str
    subcategory: str


class PullRequestInfo(BaseModel):
    """Pull request metadata the engine consults."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str = ""
    body: Optional[str] = None
    opener_login: Optional[str] = None
    created_at: str
    is_draft: bool = False
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0
    has_merge_conflict: bool = False

    @field_validator("created_at", mode="before")
    @classmethod
    def _normalise_created_at(cls, value):
        normalised = canonical_timestamp(value) if isinstance(value, (str, datetime)) else None
        if normalised is None:
            raise ValueError("created_at must be an ISO-8601 timestamp")
        return normalised


class DecisionInputs(BaseModel):
    """Everything ``decide`` needs for one pull request."""

    model_config = ConfigDict(frozen=True)

    pr: PullRequestInfo
    records: list[ActivityRecord] = Field(default_factory=list)
    file_changes: list[FileChange] = Field(default_factory=list)
    editors: frozenset[str] = Field(default_factory=frozenset)
    authors: frozenset[str] = Field(
        default_factory=frozenset, description="Handles from the preamble author lines, without the opener."
    )
