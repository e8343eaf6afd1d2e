"""Map an analysis and a classification onto reporting buckets."""

from __future__ import annotations

import math

from openprs.models.domain import AnalysisResult, CategorizedResult, PRClassification, PRType, Subcategory

STAGNANT_THRESHOLD_DAYS = 90

REASON_WAITING_ON_SPEC_AUTHORS = (
    "This status-change PR has no editor or EIP author interactions yet; it is waiting on the EIP authors."
)

CATEGORY_LABELS: dict[PRType, str] = {
    PRType.DRAFT: "PR DRAFT",
    PRType.TYPO: "Typo",
    PRType.NEW_EIP: "New EIP",
    PRType.STATUS_CHANGE: "Status Change",
    PRType.WEBSITE: "Website",
    PRType.TOOLING: "Tooling",
    PRType.EIP_1: "EIP-1",
    PRType.OTHER: "Other",
}

_AUTHOR_GATED_TYPES = frozenset({PRType.STATUS_CHANGE, PRType.NEW_EIP})


def category_label(pr_type: PRType) -> str:
    return CATEGORY_LABELS.get(pr_type, CATEGORY_LABELS[PRType.OTHER])


def is_stagnant(result: AnalysisResult, days_since_last_activity: float | None) -> bool:
    if result.needs_editor_attention or days_since_last_activity is None:
        return False
    if math.isnan(days_since_last_activity):
        return False
    return days_since_last_activity >= STAGNANT_THRESHOLD_DAYS


def _subcategory(pr_type: PRType, result: AnalysisResult, stagnant: bool) -> Subcategory:
    if pr_type is PRType.DRAFT:
        return Subcategory.STAGNANT if stagnant else Subcategory.AWAITED
    if stagnant:
        return Subcategory.STAGNANT
    if result.needs_editor_attention:
        return Subcategory.WAITING_ON_EDITOR
    return Subcategory.WAITING_ON_AUTHOR


def categorize_result(
    result: AnalysisResult,
    classification: PRClassification,
    days_since_last_activity: float | None,
    title: str | None = None,
) -> CategorizedResult:
    """Attach category and subcategory, applying the preamble-author override first.

    New documents and status changes proposed by someone outside the preamble
    author list, with no editor or author activity yet, wait on the authors
    rather than on the editors.
    """

    if (
        classification.type in _AUTHOR_GATED_TYPES
        and not classification.opened_by_preamble_author
        and result.last_editor_action is None
        and result.last_author_action is None
    ):
        result = result.model_copy(
            update={
                "needs_editor_attention": False,
                "waiting_since": None,
                "reason": REASON_WAITING_ON_SPEC_AUTHORS,
            }
        )

    stagnant = is_stagnant(result, days_since_last_activity)
    subcategory = _subcategory(classification.type, result, stagnant)
    return CategorizedResult(
        **result.model_dump(include=set(AnalysisResult.model_fields)),
        category=category_label(classification.type),
        subcategory=subcategory.value,
    )
