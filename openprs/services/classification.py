"""Pull request type classification.

Classification is an ordered table of named rules; the first rule whose
predicate matches decides the type. A status-change override runs afterwards
for pull requests that fell through to ``OTHER``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from openprs.models.domain import FileChange, FileStatus, PRClassification, PRType, PullRequestInfo
from openprs.services.preamble import SPEC_DOCUMENT_PATTERNS, is_spec_document

NEW_SPEC_DOCUMENT_PATTERNS = SPEC_DOCUMENT_PATTERNS
PROCESS_DOCUMENT_PATTERNS = (
    re.compile(r"EIPS/eip-1\.md$", re.IGNORECASE),
    re.compile(r"ERCS/erc-1\.md$", re.IGNORECASE),
    re.compile(r"RIPS/rip-1\.md$", re.IGNORECASE),
)
WEBSITE_PREFIX = "website/"
WEBSITE_KEYWORD = "website"
TOOLING_TITLE_PREFIX = re.compile(r"^(CI|Bump|Config|Chore):", re.IGNORECASE)
TOOLING_KEYWORD = re.compile(r"\b(config|bump|ci|chore)\b", re.IGNORECASE)
TOOLING_FIRST_WORD = re.compile(r"(config|bump|ci|chore)", re.IGNORECASE)
TYPO_TITLE = re.compile(r"typo|grammar|spelling", re.IGNORECASE)
STATUS_INTENT_TITLE = re.compile(r"status|move|withdraw|finalize|supersede", re.IGNORECASE)

TYPO_MAX_CHANGED_FILES = 5
TYPO_MAX_CHANGED_LINES = 50


@dataclass(frozen=True)
class ClassificationContext:
    is_draft: bool
    is_typo_like: bool
    file_changes: tuple[FileChange, ...]
    title: str
    body: str


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    label: PRType
    predicate: Callable[[ClassificationContext], bool]


def is_typo_like(pr: PullRequestInfo) -> bool:
    """Small, conflict-free pull requests whose title mentions a wording fix."""

    if not TYPO_TITLE.search(pr.title or ""):
        return False
    if pr.changed_files > TYPO_MAX_CHANGED_FILES:
        return False
    if pr.additions + pr.deletions >= TYPO_MAX_CHANGED_LINES:
        return False
    return not pr.has_merge_conflict


def has_preamble_status_change(file_changes: Iterable[FileChange]) -> bool:
    return any(
        change.status is FileStatus.MODIFIED
        and change.preamble_status_changed_only
        and is_spec_document(change.filename)
        for change in file_changes
    )


def is_status_change_like(title: str | None, file_changes: Iterable[FileChange]) -> bool:
    return bool(STATUS_INTENT_TITLE.search(title or "")) and has_preamble_status_change(file_changes)


def _adds_new_spec_document(ctx: ClassificationContext) -> bool:
    return any(
        change.status is FileStatus.ADDED
        and any(pattern.search(change.filename) for pattern in NEW_SPEC_DOCUMENT_PATTERNS)
        for change in ctx.file_changes
    )


def _touches_website(ctx: ClassificationContext) -> bool:
    if any(change.filename.lower().startswith(WEBSITE_PREFIX) for change in ctx.file_changes):
        return True
    return WEBSITE_KEYWORD in f"{ctx.title} {ctx.body}".lower()


def _looks_like_tooling(ctx: ClassificationContext) -> bool:
    if TOOLING_TITLE_PREFIX.match(ctx.title.strip()):
        return True
    if TOOLING_KEYWORD.search(ctx.title) or TOOLING_KEYWORD.search(ctx.body):
        return True
    words = ctx.body.split()
    return bool(words) and TOOLING_FIRST_WORD.fullmatch(words[0]) is not None


def _touches_process_document(ctx: ClassificationContext) -> bool:
    return any(
        any(pattern.search(change.filename) for pattern in PROCESS_DOCUMENT_PATTERNS)
        for change in ctx.file_changes
    )


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("draft", PRType.DRAFT, lambda ctx: ctx.is_draft),
    ClassificationRule("typo", PRType.TYPO, lambda ctx: ctx.is_typo_like),
    ClassificationRule("new_spec_document", PRType.NEW_EIP, _adds_new_spec_document),
    ClassificationRule(
        "preamble_status_change",
        PRType.STATUS_CHANGE,
        lambda ctx: has_preamble_status_change(ctx.file_changes),
    ),
    ClassificationRule("website", PRType.WEBSITE, _touches_website),
    ClassificationRule("tooling", PRType.TOOLING, _looks_like_tooling),
    ClassificationRule("eip_1", PRType.EIP_1, _touches_process_document),
)


def first_match(
    rules: Sequence[ClassificationRule],
    ctx: ClassificationContext,
    default: PRType = PRType.OTHER,
) -> PRType:
    for rule in rules:
        if rule.predicate(ctx):
            return rule.label
    return default


def classify_pr_type(
    is_draft: bool,
    is_typo_like: bool,
    file_changes: Iterable[FileChange],
    title: Optional[str],
    body: Optional[str],
    *,
    rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES,
) -> PRClassification:
    ctx = ClassificationContext(
        is_draft=is_draft,
        is_typo_like=is_typo_like,
        file_changes=tuple(file_changes),
        title=title or "",
        body=body or "",
    )
    return PRClassification(type=first_match(rules, ctx))


def apply_status_change_override(
    classification: PRClassification,
    *,
    is_draft: bool,
    is_typo_like: bool,
    title: Optional[str],
    file_changes: Iterable[FileChange],
) -> PRClassification:
    """Promote ``OTHER`` to ``STATUS_CHANGE`` when the title states status intent."""

    if classification.type is not PRType.OTHER or is_draft or is_typo_like:
        return classification
    if not is_status_change_like(title, file_changes):
        return classification
    return classification.model_copy(update={"type": PRType.STATUS_CHANGE})
