"""
Configuration Management for Rex Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The month span (start year and number of years) is only read when a
ledger database is created. After that the span stored in the database
wins, because the snapshot rows have already been materialized.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rexledger.models.transaction import TRANSFER_SEPARATOR, breaks_transfer_syntax


class LedgerSettings(BaseSettings):
    """Ledger database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_path: str = Field(
        default="data.sqlite",
        description="Path of the SQLite ledger file"
    )

    # Month span, fixed at creation time
    start_year: int = Field(
        default=2022,
        ge=1900,
        le=9000,
        description="First calendar year with snapshot rows"
    )
    years: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Number of years materialized at creation"
    )

    default_methods: str = Field(
        default="Cash,Bank",
        description="Comma-separated transaction methods for a new ledger"
    )

    busy_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="How long SQLite waits on a locked database"
    )
    audit_enabled: bool = Field(
        default=True,
        description="Persist audit events in the ledger database"
    )

    @field_validator("default_methods")
    @classmethod
    def validate_default_methods(cls, v: str) -> str:
        names = [name.strip() for name in v.split(",") if name.strip()]
        if not names:
            raise ValueError("At least one default method is required")
        if len(set(names)) != len(names):
            raise ValueError("Default methods must be unique")
        for name in names:
            if breaks_transfer_syntax(name):
                raise ValueError(
                    f"Method name cannot contain, start or end with '{TRANSFER_SEPARATOR.strip()}': {name}"
                )
        return v

    @property
    def default_methods_list(self) -> list[str]:
        """Get default methods as a list."""
        return [name.strip() for name in self.default_methods.split(",") if name.strip()]

    @property
    def path(self) -> Path:
        return Path(self.database_path).expanduser()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON lines (False: human readable console)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
