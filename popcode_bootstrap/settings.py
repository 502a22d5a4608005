"""
Typed settings management using pydantic-settings.

Every tunable of the bootstrap layer lives here: retry backoff, the GitHub
endpoint and token, and error telemetry. Values come from environment
variables (and a local .env file) and are validated on load.

Usage:
    from popcode_bootstrap.settings import get_settings

    settings = get_settings()
    policy = settings.retry.to_policy()
    if settings.github.token:
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from popcode_bootstrap.retry import RetryPolicy


# =============================================================================
# Retry Settings
# =============================================================================


class RetrySettings(BaseSettings):
    """Backoff configuration for outbound source-host calls."""

    model_config = SettingsConfigDict(
        env_prefix="POPCODE_RETRY_",
        extra="ignore",
    )

    retries: int = Field(
        default=5,
        ge=0,
        description="Retries after the first attempt for generic calls",
    )
    factor: float = Field(
        default=2.0,
        gt=1.0,
        description="Exponential backoff factor",
    )
    min_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay before the first retry, in seconds",
    )
    max_delay: float = Field(
        default=10.0,
        ge=0.0,
        description="Ceiling on any single retry delay, in seconds",
    )
    import_retries: int = Field(
        default=3,
        ge=0,
        description="Retries used by gist and repository imports",
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetrySettings":
        if self.max_delay < self.min_delay:
            raise ValueError("max_delay must not be smaller than min_delay")
        return self

    def to_policy(self) -> RetryPolicy:
        """Build the RetryPolicy described by these settings."""
        return RetryPolicy(
            retries=self.retries,
            factor=self.factor,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
        )


# =============================================================================
# GitHub Settings
# =============================================================================


class GitHubSettings(BaseSettings):
    """Source-host endpoint and credentials."""

    model_config = SettingsConfigDict(
        env_prefix="POPCODE_GITHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API root",
    )
    user_agent: str = Field(default="popcode-bootstrap/1.0")
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request timeout in seconds",
    )
    default_ref: Optional[str] = Field(
        default=None,
        description="Ref to import repositories from (None = the repository's default branch)",
    )
    token: Optional[SecretStr] = Field(default=None, alias="GITHUB_TOKEN")

    def get_token(self) -> Optional[str]:
        if self.token is None:
            return None
        value = self.token.get_secret_value()
        return value or None


# =============================================================================
# Telemetry Settings
# =============================================================================


class TelemetrySettings(BaseSettings):
    """Logfire error telemetry configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    logfire_token: Optional[SecretStr] = Field(default=None, alias="LOGFIRE_TOKEN")
    service_name: str = Field(default="popcode-bootstrap", alias="POPCODE_SERVICE_NAME")
    send_to_logfire: bool = Field(
        default=False,
        alias="POPCODE_SEND_TO_LOGFIRE",
        description="Ship telemetry to Logfire even without an explicit token",
    )


# =============================================================================
# Master Settings Class
# =============================================================================


class Settings(BaseSettings):
    """Master settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POPCODE_",
        extra="ignore",
        case_sensitive=False,
    )

    app_url: str = Field(
        default="https://popcode.org/",
        description="Public workspace URL, used to build gist import links",
    )

    retry: RetrySettings = Field(default_factory=RetrySettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)


# =============================================================================
# Cached Singleton Accessors
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings singleton.

    To reload after the environment changed, call clear_settings_cache() first.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next access reloads them."""
    get_settings.cache_clear()
