"""GitHub-backed collection of pull request activity and metadata."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, TypeVar

from github import Github, GithubException, RateLimitExceededException
from github.Auth import Token

from openprs.core.exceptions import EditorConfigError, GitHubTokenError
from openprs.models.domain import (
    ActivityRecord,
    DecisionInputs,
    EventSource,
    FileChange,
    FileStatus,
    PullRequestInfo,
)
from openprs.services.preamble import (
    collect_preamble_authors,
    is_author_candidate,
    is_spec_document,
    parse_editor_logins,
    preamble_status_changed_only,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUSES = frozenset({403, 429})
TRANSIENT_STATUSES = frozenset({500, 502, 503, 504})
NOT_FOUND_STATUS = 404
MERGE_CONFLICT_STATE = "dirty"

_REVIEW_SOURCES = {
    "APPROVED": EventSource.REVIEW_APPROVED,
    "CHANGES_REQUESTED": EventSource.REVIEW_CHANGES_REQUESTED,
}


class TokenPool:
    """Round-robin over configured tokens; advanced when a token hits its rate limit."""

    def __init__(self, tokens: Iterable[str]) -> None:
        self._tokens = [token for token in tokens if token]
        if not self._tokens:
            raise GitHubTokenError(
                "No GitHub tokens configured. Set GITHUB_TOKEN (optionally GITHUB_TOKEN_2..4) or OPENPRS_GITHUB_TOKENS."
            )
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._tokens)

    @property
    def index(self) -> int:
        return self._index

    def current(self) -> str:
        return self._tokens[self._index]

    def rotate(self) -> str:
        with self._lock:
            self._index = (self._index + 1) % len(self._tokens)
            return self._tokens[self._index]


class GitHubActivityCollector:
    """Turns GitHub pull requests into the inputs of the decision engine."""

    def __init__(
        self,
        tokens: Iterable[str],
        *,
        base_url: str | None = None,
        cache_ttl_seconds: int = 300,
        timeout_seconds: int = 30,
        retry_attempts: int = 3,
        retry_delay_seconds: float = 4.0,
        client_factory: Callable[[str], Github] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._pool = TokenPool(tokens)
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout_seconds
        self._client_factory = client_factory or self._build_client
        self._clients: dict[int, Github] = {}
        self._cache_ttl = max(cache_ttl_seconds, 30)
        self._retry_attempts = max(retry_attempts, 0)
        self._retry_delay = retry_delay_seconds
        self._sleep = sleep
        self._content_cache: dict[tuple[str, str, str], tuple[float, Optional[str]]] = {}

    def _build_client(self, token: str) -> Github:
        auth = Token(token)
        if self._base_url:
            return Github(auth=auth, base_url=self._base_url, timeout=self._timeout)
        return Github(auth=auth, timeout=self._timeout)

    def _client(self) -> Github:
        index = self._pool.index
        client = self._clients.get(index)
        if client is None:
            client = self._client_factory(self._pool.current())
            self._clients[index] = client
        return client

    def _call(self, operation: Callable[[Github], T]) -> T:
        """Run ``operation`` with token rotation on rate limits and retries on 5xx."""

        rotations = 0
        retries = 0
        while True:
            try:
                return operation(self._client())
            except GithubException as exc:
                if isinstance(exc, RateLimitExceededException) or exc.status in RATE_LIMIT_STATUSES:
                    if rotations + 1 >= len(self._pool):
                        raise
                    rotations += 1
                    self._pool.rotate()
                    _logger.warning("GitHub rate limit hit; rotating to token %d", self._pool.index + 1)
                    continue
                if exc.status in TRANSIENT_STATUSES and retries < self._retry_attempts:
                    retries += 1
                    _logger.warning(
                        "GitHub request failed with %s; retry %d/%d in %.0fs",
                        exc.status,
                        retries,
                        self._retry_attempts,
                        self._retry_delay,
                    )
                    self._sleep(self._retry_delay)
                    continue
                raise

    def load_editors(self, repo_full_name: str, path: str) -> frozenset[str]:
        try:
            text = self._call(
                lambda gh: gh.get_repo(repo_full_name).get_contents(path).decoded_content.decode("utf-8")
            )
        except GithubException as exc:
            raise EditorConfigError(f"Unable to read {repo_full_name}/{path}: {exc}") from exc
        editors = parse_editor_logins(text)
        if not editors:
            raise EditorConfigError(f"No editor handles found in {repo_full_name}/{path}")
        _logger.info("Loaded %d editors from %s/%s", len(editors), repo_full_name, path)
        return editors

    def list_pulls(self, repo_full_name: str, state: str = "all") -> list:
        return self._call(lambda gh: list(gh.get_repo(repo_full_name).get_pulls(state=state)))

    def get_pull(self, repo_full_name: str, number: int):
        return self._call(lambda gh: gh.get_repo(repo_full_name).get_pull(number))

    @staticmethod
    def pull_info(pull) -> PullRequestInfo:
        user = getattr(pull, "user", None)
        return PullRequestInfo(
            number=pull.number,
            title=pull.title or "",
            body=pull.body,
            opener_login=getattr(user, "login", None),
            created_at=pull.created_at,
            is_draft=bool(getattr(pull, "draft", False)),
            changed_files=getattr(pull, "changed_files", 0) or 0,
            additions=getattr(pull, "additions", 0) or 0,
            deletions=getattr(pull, "deletions", 0) or 0,
            has_merge_conflict=getattr(pull, "mergeable_state", None) == MERGE_CONFLICT_STATE,
        )

    def activity_records(self, pull) -> list[ActivityRecord]:
        records: list[ActivityRecord] = []
        for review in self._safe_paginated(pull.get_reviews):
            records.append(
                ActivityRecord(
                    actor_login=self._login(review),
                    source=_REVIEW_SOURCES.get(getattr(review, "state", None), EventSource.REVIEW_COMMENTED),
                    timestamp=self._coerce_iso(getattr(review, "submitted_at", None)),
                    fallback_timestamp=self._coerce_iso(getattr(review, "created_at", None)),
                )
            )
        for comment in self._safe_paginated(pull.get_issue_comments):
            records.append(
                ActivityRecord(
                    actor_login=self._login(comment),
                    source=EventSource.ISSUE_COMMENT,
                    timestamp=self._coerce_iso(getattr(comment, "created_at", None)),
                )
            )
        for comment in self._safe_paginated(pull.get_review_comments):
            records.append(
                ActivityRecord(
                    actor_login=self._login(comment),
                    source=EventSource.REVIEW_COMMENT,
                    timestamp=self._coerce_iso(getattr(comment, "created_at", None)),
                )
            )
        for commit in self._safe_paginated(pull.get_commits):
            records.append(self._commit_record(commit))
        return records

    def file_changes(self, repo_full_name: str, pull) -> list[FileChange]:
        base_sha = getattr(getattr(pull, "base", None), "sha", None)
        head_sha = getattr(getattr(pull, "head", None), "sha", None)
        changes: list[FileChange] = []
        for entry in self._safe_paginated(pull.get_files):
            status = self._file_status(getattr(entry, "status", None))
            status_only = False
            if status is FileStatus.MODIFIED and is_spec_document(entry.filename):
                status_only = preamble_status_changed_only(
                    self._file_text(repo_full_name, entry.filename, base_sha),
                    self._file_text(repo_full_name, entry.filename, head_sha),
                )
            changes.append(
                FileChange(
                    filename=entry.filename,
                    status=status,
                    additions=getattr(entry, "additions", None),
                    deletions=getattr(entry, "deletions", None),
                    preamble_status_changed_only=status_only,
                )
            )
        return changes

    def preamble_authors(self, repo_full_name: str, pull, file_changes: Iterable[FileChange]) -> frozenset[str]:
        head_sha = getattr(getattr(pull, "head", None), "sha", None)
        documents = []
        for change in file_changes:
            if not is_author_candidate(change.filename):
                continue
            text = self._file_text(repo_full_name, change.filename, head_sha)
            if text is not None:
                documents.append(text)
        return collect_preamble_authors(documents)

    def decision_inputs(self, repo_full_name: str, pull, editors: frozenset[str]) -> DecisionInputs:
        info = self.pull_info(pull)
        file_changes = self.file_changes(repo_full_name, pull)
        if info.is_draft:
            return DecisionInputs(pr=info, file_changes=file_changes, editors=editors)
        return DecisionInputs(
            pr=info,
            records=self.activity_records(pull),
            file_changes=file_changes,
            editors=editors,
            authors=self.preamble_authors(repo_full_name, pull, file_changes),
        )

    def _file_text(self, repo_full_name: str, path: str, ref: str | None) -> Optional[str]:
        if not ref:
            return None
        key = (repo_full_name, path, ref)
        cached = self._content_cache.get(key)
        now = time.monotonic()
        if cached and cached[0] > now:
            return cached[1]
        try:
            text = self._call(
                lambda gh: gh.get_repo(repo_full_name).get_contents(path, ref=ref).decoded_content.decode("utf-8")
            )
        except (GithubException, AttributeError, UnicodeDecodeError):
            text = None
        self._content_cache[key] = (now + self._cache_ttl, text)
        return text

    def _commit_record(self, commit) -> ActivityRecord:
        login = getattr(getattr(commit, "author", None), "login", None) or getattr(
            getattr(commit, "committer", None), "login", None
        )
        git_commit = getattr(commit, "commit", None)
        authored = getattr(getattr(git_commit, "author", None), "date", None)
        committed = getattr(getattr(git_commit, "committer", None), "date", None)
        return ActivityRecord(
            actor_login=login,
            source=EventSource.COMMIT,
            timestamp=self._coerce_iso(authored),
            fallback_timestamp=self._coerce_iso(committed),
        )

    @staticmethod
    def _login(item) -> Optional[str]:
        return getattr(getattr(item, "user", None), "login", None)

    @staticmethod
    def _file_status(value: str | None) -> FileStatus:
        try:
            return FileStatus(value)
        except ValueError:
            return FileStatus.CHANGED

    def _safe_paginated(self, fetcher: Callable[[], Iterable]) -> list:
        """List a per-PR endpoint through the retrying client; a 404 reads as an empty listing."""

        try:
            return self._call(lambda gh: list(fetcher()))
        except GithubException as exc:
            if exc.status == NOT_FOUND_STATUS:
                return []
            raise

    @staticmethod
    def _coerce_iso(value) -> str | None:
        if not value:
            return None
        if isinstance(value, str):
            return value
        if not isinstance(value, datetime):
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
