"""
Configuration Management for Split Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: the remote ledger endpoint and
credential, retry policy, and the engine's presentation-facing knobs.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerApiSettings(BaseSettings):
    """Remote ledger API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the ledger API"
    )
    token: Optional[str] = Field(
        default=None,
        description="Bearer credential supplied by the auth layer"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-request timeout"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for idempotent reads on transport failure"
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Exponential backoff multiplier between read attempts"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AppSettings(BaseSettings):
    """
    Engine settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPLITLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Enrichment
    self_label: str = Field(
        default="You",
        min_length=1,
        description="Display name used for the observer's own rows"
    )
    placeholder_name_template: str = Field(
        default="User {user_id}",
        description="Fallback display name when identity lookup fails"
    )
    max_concurrent_lookups: Optional[int] = Field(
        default=None,
        ge=1,
        description="Cap on concurrent identity lookups (unbounded when unset)"
    )

    # Notifications
    notify_on_initial_load: bool = Field(
        default=False,
        description="Emit 'new bill split(s)' on the first successful load"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON (console renderer otherwise)"
    )

    @field_validator("placeholder_name_template")
    @classmethod
    def template_has_user_id(cls, v: str) -> str:
        if "{user_id}" not in v:
            raise ValueError("placeholder_name_template must contain {user_id}")
        return v

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()

    def placeholder_name(self, user_id: str) -> str:
        return self.placeholder_name_template.format(user_id=user_id)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger_api(self) -> LedgerApiSettings:
        return LedgerApiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries for the ones that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger_api", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
