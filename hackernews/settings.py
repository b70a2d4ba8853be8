"""Configuration for the Hacker News engine and API."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, PositiveFloat, PositiveInt, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HackerNewsSettings(BaseSettings):
    """Environment-driven configuration."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    api_base: str = Field(
        "https://hacker-news.firebaseio.com/v0",
        alias="HN_API_BASE",
        description="Official read-only item API base URL.",
    )
    site_base: str = Field(
        "https://news.ycombinator.com",
        alias="HN_SITE_BASE",
        description="Rendered site base URL used for scraping.",
    )
    page_limit: PositiveInt = Field(30, alias="HN_PAGE_LIMIT", description="Stories per listing page (≤100)")
    queue_concurrency: PositiveInt = Field(999, alias="HN_QUEUE_CONCURRENCY", description="Max in-flight upstream requests")
    queue_max_per_window: PositiveInt = Field(
        1000,
        alias="HN_QUEUE_MAX_PER_WINDOW",
        description="Max upstream requests started per window.",
    )
    queue_window_seconds: PositiveFloat = Field(1.0, alias="HN_QUEUE_WINDOW_SECONDS", description="Rate window width (s)")
    item_max_attempts: PositiveInt = Field(3, alias="HN_ITEM_MAX_ATTEMPTS", description="Attempts for top-level items")
    comment_max_attempts: PositiveInt = Field(2, alias="HN_COMMENT_MAX_ATTEMPTS", description="Attempts per comment node")
    request_timeout_seconds: PositiveFloat = Field(10.0, alias="HN_REQUEST_TIMEOUT_SECONDS", description="HTTP timeout (s)")
    user_agent: str = Field("hn-json-api/0.1", alias="HN_USER_AGENT", description="Outbound User-Agent header")
    cache_url: Optional[str] = Field(None, alias="HN_CACHE_URL", description="Redis DSN for the response cache.")
    cache_ttl_seconds: PositiveInt = Field(300, alias="HN_CACHE_TTL_SECONDS", description="Response cache TTL (s)")
    log_level: str = Field("INFO", alias="LOG_LEVEL", description="Root log level.")
    log_json: bool = Field(False, alias="LOG_JSON", description="Emit logs as JSON lines.")

    @field_validator("api_base", "site_base")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        base = value.strip().rstrip("/")
        if not base:
            raise ValueError("base URL must not be blank.")
        if "://" not in base:
            raise ValueError(f"base URL must include a scheme: {base}")
        return base

    @field_validator("page_limit")
    @classmethod
    def _validate_page_limit(cls, v: int) -> int:
        if v > 100:
            raise ValueError("HN_PAGE_LIMIT must be 100 or less.")
        return v

    @field_validator("cache_url")
    @classmethod
    def _blank_cache_url_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


@lru_cache()
def get_settings() -> HackerNewsSettings:
    """Return settings built from the current environment."""
    try:
        return HackerNewsSettings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc


def reset_settings_cache() -> None:
    """Drop the cached settings (used by tests)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
