"""Per pull request decision: classify, analyse the timeline, categorise."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from openprs.core.identifiers import new_decision_id
from openprs.models.domain import (
    AnalysisResult,
    CategorizedResult,
    DecisionInputs,
    PRClassification,
    PullRequestInfo,
    TimelineEvent,
    parse_timestamp,
)
from openprs.services.categorizer import categorize_result
from openprs.services.classification import (
    apply_status_change_override,
    classify_pr_type,
    is_typo_like,
)
from openprs.services.timeline import BOT_LOGIN_SUFFIX, build_timeline, is_bot, normalize_logins
from openprs.services.waiting_state import analyze_timeline
from openprs.telemetry import EventSink, NullEventSink, record_decision, record_decision_duration

_logger = logging.getLogger(__name__)

REASON_DRAFT = "This PR is in draft status."
SECONDS_PER_DAY = 86400.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


def days_between(start: str | datetime | None, end: datetime) -> float | None:
    start_dt = parse_timestamp(start)
    if start_dt is None:
        return None
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return (end - start_dt).total_seconds() / SECONDS_PER_DAY


def activity_age_days(
    timeline: list[TimelineEvent],
    created_at: str,
    now: datetime,
) -> float | None:
    last_activity = timeline[-1].timestamp if timeline else created_at
    return days_between(last_activity, now)


def classify(inputs: DecisionInputs, *, bot_suffix: str = BOT_LOGIN_SUFFIX) -> PRClassification:
    pr = inputs.pr
    typo_like = is_typo_like(pr)
    classification = classify_pr_type(
        pr.is_draft,
        typo_like,
        inputs.file_changes,
        pr.title,
        pr.body,
    )
    classification = apply_status_change_override(
        classification,
        is_draft=pr.is_draft,
        is_typo_like=typo_like,
        title=pr.title,
        file_changes=inputs.file_changes,
    )
    opener = (pr.opener_login or "").lower()
    return classification.model_copy(
        update={
            "is_created_by_bot": bool(pr.opener_login) and is_bot(pr.opener_login, bot_suffix),
            "opened_by_preamble_author": bool(opener) and opener in normalize_logins(inputs.authors),
        }
    )


def _draft_analysis() -> AnalysisResult:
    return AnalysisResult(
        needs_editor_attention=False,
        waiting_since=None,
        last_editor_action=None,
        last_author_action=None,
        reason=REASON_DRAFT,
    )


def decide(
    inputs: DecisionInputs,
    *,
    days_since_last_activity: float | None = None,
    now: datetime | None = None,
    bot_suffix: str = BOT_LOGIN_SUFFIX,
) -> CategorizedResult:
    """Decide the attention state and reporting bucket of one open pull request.

    ``days_since_last_activity`` wins when supplied. Otherwise it is measured
    against ``now`` from the latest timeline event (or PR creation for drafts
    and empty timelines); with neither, staleness is not evaluated.
    """

    pr = inputs.pr
    classification = classify(inputs, bot_suffix=bot_suffix)

    if pr.is_draft:
        analysis = _draft_analysis()
        timeline: list[TimelineEvent] = []
    else:
        timeline = build_timeline(
            inputs.records,
            inputs.editors,
            inputs.authors,
            pr.opener_login,
            pr.created_at,
            bot_suffix=bot_suffix,
        )
        analysis = analyze_timeline(timeline)

    days = days_since_last_activity
    if days is None and now is not None:
        days = activity_age_days(timeline, pr.created_at, now)

    return categorize_result(analysis, classification, days, pr.title)


def resolve_waiting_since(result: AnalysisResult, created_at: str) -> str | None:
    """Substitute PR creation time when attention is needed but no editor has acted."""

    if result.needs_editor_attention and not result.waiting_since:
        return created_at
    return result.waiting_since


def waiting_days(result: AnalysisResult, created_at: str, now: datetime) -> float | None:
    return days_between(resolve_waiting_since(result, created_at), now)


class DecisionService:
    """Runs ``decide`` with logging, metrics and event publishing around it."""

    def __init__(self, sink: EventSink | None = None, *, bot_suffix: str = BOT_LOGIN_SUFFIX) -> None:
        self._sink = sink or NullEventSink()
        self._bot_suffix = bot_suffix

    def decide(
        self,
        inputs: DecisionInputs,
        *,
        repo: str | None = None,
        days_since_last_activity: float | None = None,
        now: datetime | None = None,
    ) -> CategorizedResult:
        started = time.perf_counter()
        reference = now or _now()
        result = decide(
            inputs,
            days_since_last_activity=days_since_last_activity,
            now=reference,
            bot_suffix=self._bot_suffix,
        )
        record_decision_duration(time.perf_counter() - started)
        record_decision(result.category, result.subcategory)
        _logger.debug(
            "PR #%s in %s: %s / %s",
            inputs.pr.number,
            repo or "-",
            result.category,
            result.subcategory,
        )
        self._publish(inputs.pr, result, repo, reference)
        return result

    def _publish(
        self,
        pr: PullRequestInfo,
        result: CategorizedResult,
        repo: str | None,
        reference: datetime,
    ) -> None:
        event = {
            "event_type": "pr_decision",
            "decision_id": new_decision_id(),
            "timestamp": reference.isoformat(),
            "repo": repo,
            "pr_number": pr.number,
            "category": result.category,
            "subcategory": result.subcategory,
            "needs_editor_attention": result.needs_editor_attention,
            "waiting_since": resolve_waiting_since(result, pr.created_at),
        }
        try:
            self._sink.publish(event)
        except Exception:
            _logger.exception("Failed to publish decision event for PR #%s", pr.number)
