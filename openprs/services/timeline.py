"""Actor role resolution and timeline construction.

Activity records from every source are merged into one chronological list of
events attributed to either an editor or an author. Anything that cannot be
attributed (bots, deleted accounts, unrelated participants, records with no
usable time) is dropped here so later stages never see it.
"""

from __future__ import annotations

import logging
from typing import Iterable

from openprs.models.domain import (
    ActivityRecord,
    ActorRole,
    EventSource,
    TimelineEvent,
    canonical_timestamp,
)

_logger = logging.getLogger(__name__)

BOT_LOGIN_SUFFIX = "[bot]"

_SOURCE_ORDER = {source: index for index, source in enumerate(EventSource)}


def normalize_logins(logins: Iterable[str | None]) -> frozenset[str]:
    return frozenset(login.strip().lower() for login in logins if login and login.strip())


def is_bot(login: str | None, suffix: str = BOT_LOGIN_SUFFIX) -> bool:
    """A missing login is treated like a bot: it can never be attributed."""

    if not login:
        return True
    return login.strip().lower().endswith(suffix.lower())


def resolve_role(
    login: str | None,
    editors: frozenset[str],
    authors: frozenset[str],
    *,
    bot_suffix: str = BOT_LOGIN_SUFFIX,
) -> ActorRole:
    """Resolve a login against pre-normalised editor and author sets."""

    if is_bot(login, bot_suffix):
        return ActorRole.UNUSABLE
    lower = login.strip().lower()
    if lower in editors:
        return ActorRole.EDITOR
    if lower in authors:
        return ActorRole.AUTHOR
    return ActorRole.NONE


def effective_authors(
    authors: Iterable[str],
    pr_opener: str | None,
    *,
    bot_suffix: str = BOT_LOGIN_SUFFIX,
) -> frozenset[str]:
    normalised = set(normalize_logins(authors))
    if not is_bot(pr_opener, bot_suffix):
        normalised.add(pr_opener.strip().lower())
    return frozenset(normalised)


def _canonical_order(record: ActivityRecord) -> tuple:
    return (
        record.timestamp or "",
        record.fallback_timestamp or "",
        _SOURCE_ORDER[record.source],
        (record.actor_login or "").lower(),
    )


def build_timeline(
    records: Iterable[ActivityRecord],
    editors: Iterable[str],
    authors: Iterable[str],
    pr_opener: str | None,
    pr_created_at: str | None,
    *,
    bot_suffix: str = BOT_LOGIN_SUFFIX,
) -> list[TimelineEvent]:
    editor_set = normalize_logins(editors)
    author_set = effective_authors(authors, pr_opener, bot_suffix=bot_suffix)

    events: list[TimelineEvent] = []
    opened_at = canonical_timestamp(pr_created_at)
    if opened_at and resolve_role(pr_opener, editor_set, author_set, bot_suffix=bot_suffix) is ActorRole.AUTHOR:
        events.append(
            TimelineEvent(
                actor=pr_opener,
                role=ActorRole.AUTHOR,
                source=EventSource.PR_OPENED,
                timestamp=opened_at,
            )
        )

    dropped = 0
    for record in sorted(records, key=_canonical_order):
        if record.source is EventSource.PR_OPENED:
            continue
        role = resolve_role(record.actor_login, editor_set, author_set, bot_suffix=bot_suffix)
        if role not in (ActorRole.EDITOR, ActorRole.AUTHOR):
            dropped += 1
            continue
        timestamp = record.timestamp or record.fallback_timestamp
        if not timestamp:
            dropped += 1
            continue
        events.append(
            TimelineEvent(actor=record.actor_login, role=role, source=record.source, timestamp=timestamp)
        )

    if dropped:
        _logger.debug("Dropped %d unattributable activity records", dropped)
    events.sort(key=lambda event: event.timestamp)
    return events
