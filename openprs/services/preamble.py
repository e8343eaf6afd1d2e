"""Text helpers for specification documents and the editor roster."""

from __future__ import annotations

import re
from typing import Iterable

SPEC_DOCUMENT_PATTERNS = (
    re.compile(r"EIPS/eip-\d+\.md", re.IGNORECASE),
    re.compile(r"ERCS/erc-\d+\.md", re.IGNORECASE),
    re.compile(r"RIPS/rip-\d+\.md", re.IGNORECASE),
)
AUTHOR_CANDIDATE_DIRECTORIES = ("EIPS/", "ERCS/", "RIPS/")
AUTHOR_CANDIDATE_KEYWORDS = ("eip", "erc", "rip")

EDITOR_GITHUB_LINE = re.compile(r"github:\s*([A-Za-z0-9-]+)")
AUTHOR_LINE = re.compile(r"^author\s*:", re.IGNORECASE)
AUTHOR_HANDLE = re.compile(r"@([A-Za-z0-9-]+)")
STATUS_LINE = re.compile(r"^status\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
STATUS_PREFIX = re.compile(r"^status\s*:", re.IGNORECASE)


def is_spec_document(filename: str) -> bool:
    return any(pattern.search(filename) for pattern in SPEC_DOCUMENT_PATTERNS)


def is_author_candidate(filename: str) -> bool:
    """Markdown files that may carry an ``author:`` preamble line."""

    lower = filename.lower()
    if not lower.endswith(".md"):
        return False
    if filename.startswith(AUTHOR_CANDIDATE_DIRECTORIES):
        return True
    return any(keyword in lower for keyword in AUTHOR_CANDIDATE_KEYWORDS)


def parse_editor_logins(text: str) -> frozenset[str]:
    """Collect ``github: handle`` entries from the editor roster file."""

    editors: set[str] = set()
    for line in text.splitlines():
        match = EDITOR_GITHUB_LINE.search(line)
        if match:
            editors.add(match.group(1))
    return frozenset(editors)


def extract_preamble_authors(text: str) -> frozenset[str]:
    """Handles from the first ``author:`` line; later author lines are ignored."""

    for line in text.splitlines():
        if not AUTHOR_LINE.match(line):
            continue
        return frozenset(AUTHOR_HANDLE.findall(line))
    return frozenset()


def collect_preamble_authors(documents: Iterable[str]) -> frozenset[str]:
    authors: set[str] = set()
    for text in documents:
        authors.update(extract_preamble_authors(text))
    return frozenset(authors)


def split_preamble(text: str) -> tuple[str, str]:
    """Split a document at its first blank line into ``(preamble, body)``."""

    lines = text.splitlines()
    index = 0
    while index < len(lines) and lines[index].strip():
        index += 1
    return "\n".join(lines[:index]), "\n".join(lines[index + 1 :])


def extract_status(preamble: str) -> str | None:
    match = STATUS_LINE.search(preamble)
    if not match:
        return None
    return match.group(1).strip()


def _strip_status(preamble: str) -> str:
    return "\n".join(line for line in preamble.splitlines() if not STATUS_PREFIX.match(line)).strip()


def preamble_status_changed_only(base_text: str | None, head_text: str | None) -> bool:
    """True when two revisions differ only in the value of the preamble ``status:`` line."""

    if base_text is None or head_text is None:
        return False
    base_preamble, base_body = split_preamble(base_text)
    head_preamble, head_body = split_preamble(head_text)
    if base_body != head_body:
        return False
    base_status = extract_status(base_preamble)
    head_status = extract_status(head_preamble)
    if base_status is None and head_status is None:
        return False
    return _strip_status(base_preamble) == _strip_status(head_preamble) and base_status != head_status
