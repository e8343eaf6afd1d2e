"""Application dependency wiring."""

from __future__ import annotations

from functools import lru_cache

from redis import Redis

from openprs.core.config import settings
from openprs.github.collector import GitHubActivityCollector
from openprs.repositories.redis_store import RedisBoardStore
from openprs.services.board import BoardService
from openprs.services.decision import DecisionService
from openprs.services.sync import SyncService
from openprs.telemetry import EventSink, sink_from_settings


@lru_cache
def get_redis_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True)


@lru_cache
def get_store() -> RedisBoardStore:
    return RedisBoardStore(get_redis_client())


@lru_cache
def get_event_sink() -> EventSink:
    return sink_from_settings()


@lru_cache
def get_decision_service() -> DecisionService:
    return DecisionService(sink=get_event_sink(), bot_suffix=settings.bot_login_suffix)


@lru_cache
def get_board_service() -> BoardService:
    return BoardService(get_store())


@lru_cache
def get_collector() -> GitHubActivityCollector:
    return GitHubActivityCollector(
        settings.resolved_github_tokens(),
        base_url=settings.github_base_url,
        cache_ttl_seconds=settings.github_cache_ttl_seconds,
        timeout_seconds=settings.github_request_timeout_seconds,
        retry_attempts=settings.github_retry_attempts,
        retry_delay_seconds=settings.github_retry_delay_seconds,
    )


@lru_cache
def get_sync_service() -> SyncService:
    return SyncService(
        get_collector(),
        get_store(),
        get_decision_service(),
        repos=settings.target_repos,
        editor_config_repo=settings.editor_config_repo,
        editor_config_path=settings.editor_config_path,
        concurrency=settings.open_pr_concurrency,
        sink=get_event_sink(),
    )
