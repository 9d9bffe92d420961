"""
HN Tracker Configuration

Centralized configuration for every worker in the pipeline.
All environment variables MUST be defined here. No os.getenv() calls allowed elsewhere.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _optional_env(name: str, default: str = "") -> str:
    """Get an optional environment variable with a default."""
    return os.environ.get(name, default)


def _optional_env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")
    if minimum is not None and parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid number value for {name}: {value}")


def _optional_env_bool(name: str, default: bool) -> bool:
    """Get an optional boolean environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    return value.lower() in ("true", "1", "yes")


def _optional_env_list(name: str, default: str) -> tuple[str, ...]:
    """Get a comma-separated environment variable as a tuple of names."""
    value = _optional_env(name, default)
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class HackerNewsConfig:
    """Story listing API and poll loop configuration."""
    base_url: str = "https://hacker-news.firebaseio.com/v0"
    listings: tuple[str, ...] = ("topstories",)
    poll_interval_seconds: float = 60.0
    max_stories_per_poll: int = 100
    seen_cache_size: int = 500
    fetch_concurrency: int = 20
    request_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class BrokerConfig:
    """Redis Streams broker configuration."""
    url: str = "redis://localhost:6379/0"
    story_topic: str = "hn-stories"
    digest_topic: str = "hn-updates"
    consumer_group: str = "hn-aggregator"
    consumer_name: str = "aggregator-1"
    publish_max_retries: int = 3
    publish_timeout_seconds: float = 5.0


@dataclass(frozen=True)
class AggregationConfig:
    """Hourly windowing and history retention configuration."""
    retention_hours: int = 24
    max_stories_per_hour: int = 500
    digest_story_limit: int = 30
    top_n: int = 10
    sources_limit: int = 100
    finalize_check_seconds: float = 60.0
    dedupe_event_ids: bool = False


@dataclass(frozen=True)
class ApiConfig:
    """Read API listen address."""
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass(frozen=True)
class Settings:
    """Root configuration container."""
    hackernews: HackerNewsConfig
    broker: BrokerConfig
    aggregation: AggregationConfig
    api: ApiConfig
    log_level: str = "INFO"


def _load_settings() -> Settings:
    """Load all settings from environment variables.

    Every value has a default so the service starts with no .env file;
    malformed numbers fail fast with ConfigurationError.
    """
    hackernews = HackerNewsConfig(
        base_url=_optional_env("HN_API_BASE_URL", "https://hacker-news.firebaseio.com/v0"),
        listings=_optional_env_list("HN_LISTINGS", "topstories"),
        poll_interval_seconds=_optional_env_float("HN_POLL_INTERVAL_SECONDS", 60.0),
        max_stories_per_poll=_optional_env_int("HN_MAX_STORIES_PER_POLL", 100, minimum=1),
        seen_cache_size=_optional_env_int("HN_SEEN_CACHE_SIZE", 500, minimum=1),
        fetch_concurrency=_optional_env_int("HN_FETCH_CONCURRENCY", 20, minimum=1),
        request_timeout_seconds=_optional_env_float("HN_REQUEST_TIMEOUT_SECONDS", 10.0),
    )

    broker = BrokerConfig(
        url=_optional_env("REDIS_URL", "redis://localhost:6379/0"),
        story_topic=_optional_env("STORY_TOPIC", "hn-stories"),
        digest_topic=_optional_env("DIGEST_TOPIC", "hn-updates"),
        consumer_group=_optional_env("CONSUMER_GROUP", "hn-aggregator"),
        consumer_name=_optional_env("CONSUMER_NAME", "aggregator-1"),
        publish_max_retries=_optional_env_int("PUBLISH_MAX_RETRIES", 3, minimum=1),
    )

    aggregation = AggregationConfig(
        retention_hours=_optional_env_int("HISTORY_RETENTION_HOURS", 24, minimum=1),
        max_stories_per_hour=_optional_env_int("MAX_STORIES_PER_HOUR", 500, minimum=0),
        digest_story_limit=_optional_env_int("DIGEST_STORY_LIMIT", 30, minimum=0),
        top_n=_optional_env_int("TOP_N", 10, minimum=1),
        sources_limit=_optional_env_int("SOURCES_LIMIT", 100, minimum=1),
        finalize_check_seconds=_optional_env_float("FINALIZE_CHECK_SECONDS", 60.0),
        dedupe_event_ids=_optional_env_bool("DEDUPE_EVENT_IDS", False),
    )

    api = ApiConfig(
        host=_optional_env("API_HOST", "0.0.0.0"),
        port=_optional_env_int("API_PORT", 3000, minimum=0),
    )

    return Settings(
        hackernews=hackernews,
        broker=broker,
        aggregation=aggregation,
        api=api,
        log_level=_optional_env("LOG_LEVEL", "INFO").upper(),
    )


def load_settings() -> Settings:
    """Re-read the environment. Used by tests and by main after load_dotenv()."""
    return _load_settings()


settings = _load_settings()
