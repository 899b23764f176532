"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_TTL_POLICIES: dict[str, float] = {
    "businesses": 60.0,
    "mail_billing": 10.0,
    "mail_settings": 120.0,
    "mail_contacts": 5.0,
    "mail_campaigns": 5.0,
    "user_data": 30.0,
}


def _build_governor_settings() -> "GovernorSettings":
    """Build governor settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return GovernorSettings()  # type: ignore[call-arg]


def _build_datastore_settings() -> "DataStoreSettings":
    return DataStoreSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class GovernorSettings(BaseSettings):
    """Request governor policy: limiter, cache, queue, retries and recovery.

    All durations are in seconds.
    """

    window_seconds: float = Field(
        1.0,
        description="Sliding window size used for admission control",
        gt=0,
    )
    max_global: int = Field(
        20,
        description="Maximum requests across all endpoints per window",
        ge=1,
    )
    max_per_endpoint: int = Field(
        5,
        description="Maximum requests per normalized endpoint per window",
        ge=1,
    )
    backoff_seconds: float = Field(
        5.0,
        description="How long the global circuit stays open once tripped",
        gt=0,
    )

    default_ttl_seconds: float = Field(
        30.0,
        description="Cache TTL applied when no resource-type policy matches",
        gt=0,
    )
    ttl_policies: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_TTL_POLICIES),
        description="Resource-type substring to TTL mapping (JSON in env)",
    )
    max_cache_size: int = Field(
        100,
        description="Maximum number of cached responses",
        ge=1,
    )
    cleanup_interval_seconds: float = Field(
        60.0,
        description="Interval of the periodic expired-entry sweep",
        gt=0,
    )

    drain_interval_seconds: float = Field(
        2.0,
        description="Interval between deferred queue drain cycles",
        gt=0,
    )
    drain_batch_size: int = Field(
        3,
        description="Maximum queued requests invoked per drain cycle",
        ge=1,
    )
    inter_item_delay_seconds: float = Field(
        0.5,
        description="Delay between queued requests within one drain cycle",
        ge=0,
    )

    max_retries: int = Field(
        3,
        description="Retry budget for transient remote failures",
        ge=0,
    )
    retry_step_seconds: float = Field(
        1.0,
        description="Linear backoff step between retries",
        ge=0,
    )

    recovery_delay_seconds: float = Field(
        2.0,
        description="Delay before the warm-up fetch after an emergency reset",
        ge=0,
    )
    primary_resource: str = Field(
        "businesses",
        description="Resource re-warmed after a reset and persisted as snapshot",
    )
    snapshot_path: str | None = Field(
        ".governor/last_snapshot.json",
        description="File holding the last good primary snapshot (None disables)",
    )
    snapshot_max_entries: int = Field(
        100,
        description="Maximum in-memory last-known-good snapshots",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="GOVERNOR_",
        case_sensitive=False,
    )


class DataStoreSettings(BaseSettings):
    """Remote data store configuration.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        "memory",
        description="Data store provider name (postgrest, memory)",
    )
    base_url: str | None = Field(
        None,
        description="Base URL of the PostgREST/Supabase project",
    )
    api_key: str | None = Field(
        None,
        description="Service or anon key sent as apikey/Authorization",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
    )
    schema_name: str | None = Field(
        None,
        description="Optional Accept-Profile schema for PostgREST",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATASTORE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files kept")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    governor: GovernorSettings = Field(default_factory=_build_governor_settings)
    datastore: DataStoreSettings = Field(default_factory=_build_datastore_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
