"""Decide who a pull request is waiting on from its timeline."""

from __future__ import annotations

from typing import Sequence

from openprs.models.domain import ActionSummary, ActorRole, AnalysisResult, TimelineEvent

REASON_NO_EDITOR = (
    "No editor has interacted with this PR yet; it is waiting for initial editor attention."
)
REASON_AUTHOR_RESPONDED = (
    "An editor interacted with the PR and the author has since responded; it is now waiting on editor attention."
)
REASON_WAITING_ON_AUTHOR = (
    "An editor has interacted with the PR and there has been no author response since; it is waiting on the author."
)


def _editor_action(event: TimelineEvent) -> ActionSummary:
    return ActionSummary(type=event.source, date=event.timestamp, actor=event.actor)


def _author_action(event: TimelineEvent | None) -> ActionSummary | None:
    if event is None:
        return None
    return ActionSummary(type=event.source, date=event.timestamp)


def analyze_timeline(events: Sequence[TimelineEvent]) -> AnalysisResult:
    """Single pass over a chronologically sorted timeline.

    ``waiting_since`` stays ``None`` when no editor has acted yet; callers
    substitute the PR creation time (see ``resolve_waiting_since``).
    """

    last_editor: TimelineEvent | None = None
    last_author: TimelineEvent | None = None
    for event in events:
        if event.role is ActorRole.EDITOR:
            last_editor = event
        elif event.role is ActorRole.AUTHOR:
            last_author = event

    if last_editor is None:
        return AnalysisResult(
            needs_editor_attention=True,
            waiting_since=None,
            last_editor_action=None,
            last_author_action=_author_action(last_author),
            reason=REASON_NO_EDITOR,
        )

    # Equal timestamps do not count as a response.
    if last_author is not None and last_author.timestamp > last_editor.timestamp:
        return AnalysisResult(
            needs_editor_attention=True,
            waiting_since=last_author.timestamp,
            last_editor_action=_editor_action(last_editor),
            last_author_action=_author_action(last_author),
            reason=REASON_AUTHOR_RESPONDED,
        )

    return AnalysisResult(
        needs_editor_attention=False,
        waiting_since=None,
        last_editor_action=_editor_action(last_editor),
        last_author_action=_author_action(last_author),
        reason=REASON_WAITING_ON_AUTHOR,
    )
