"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SYNC_INTERVAL_HOURS = 0.25


class Settings(BaseSettings):
    """Service-wide configuration options."""

    api_v1_prefix: str = "/v1"
    redis_url: str = "redis://localhost:6379/0"
    github_tokens: list[str] = Field(default_factory=list)
    github_token: str | None = Field(None, validation_alias=AliasChoices("openprs_github_token", "github_token"))
    github_token_2: str | None = Field(None, validation_alias=AliasChoices("openprs_github_token_2", "github_token_2"))
    github_token_3: str | None = Field(None, validation_alias=AliasChoices("openprs_github_token_3", "github_token_3"))
    github_token_4: str | None = Field(None, validation_alias=AliasChoices("openprs_github_token_4", "github_token_4"))
    github_base_url: str | None = None
    github_cache_ttl_seconds: int = 300
    github_request_timeout_seconds: int = 30
    github_retry_attempts: int = 3
    github_retry_delay_seconds: float = 4.0
    target_repos: list[str] = Field(
        default_factory=lambda: ["ethereum/EIPs", "ethereum/ERCs", "ethereum/RIPs"]
    )
    editor_config_repo: str = "ethereum/EIPs"
    editor_config_path: str = "config/eip-editors.yml"
    bot_login_suffix: str = "[bot]"
    open_pr_concurrency: int = 4
    sync_interval_hours: float = 2.0
    csv_output_path: str = "output/pr-analysis.csv"
    events_backend: str = "file"
    events_path: str = "data/decision_events.jsonl"
    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_exporter: str = "console"
    otel_otlp_endpoint: str | None = None

    model_config = SettingsConfigDict(env_prefix="openprs_", env_file=".env", extra="ignore")

    @field_validator("sync_interval_hours")
    @classmethod
    def _clamp_interval(cls, value: float) -> float:
        return max(value, MIN_SYNC_INTERVAL_HOURS)

    @field_validator("open_pr_concurrency")
    @classmethod
    def _positive_concurrency(cls, value: int) -> int:
        return max(value, 1)

    def resolved_github_tokens(self) -> list[str]:
        """Explicit token list first, then GITHUB_TOKEN, GITHUB_TOKEN_2 .. GITHUB_TOKEN_4."""

        tokens: list[str] = []
        for token in [*self.github_tokens, self.github_token, self.github_token_2, self.github_token_3, self.github_token_4]:
            if token and token not in tokens:
                tokens.append(token)
        return tokens


settings = Settings()
