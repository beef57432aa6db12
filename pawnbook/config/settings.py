"""
Configuration Management for PawnBook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see where the shop's data lives and ensures
every setting is validated at startup.
"""

from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where and how the collections are persisted."""

    model_config = SettingsConfigDict(
        env_prefix="PAWNBOOK_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="json_file",
        pattern="^(json_file|memory)$",
        description="Storage backend: 'json_file' or 'memory'"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON file per collection"
    )
    key_prefix: str = Field(
        default="pawn_",
        description="Prefix of every collection key"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAWNBOOK_",
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
        description="Enable debug logging"
    )

    # Calendar
    timezone: str = Field(
        default="",
        description="IANA timezone for day boundaries; empty means system local"
    )

    # Validation thresholds
    max_bill_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Loans above this are flagged for a second look"
    )

    # Reports
    timeline_months: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Number of monthly buckets in the customer timeline"
    )
    currency_symbol: str = Field(default="₹", max_length=5)

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Fail at startup rather than on the first report."""
        if v and v.upper() != "UTC":
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tz(self) -> tzinfo:
        """Resolve the configured timezone."""
        return resolve_timezone(self.timezone)


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
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


def resolve_timezone(name: str) -> tzinfo:
    """Map a timezone name to a tzinfo; empty means the machine's local zone."""
    if not name:
        return datetime.now().astimezone().tzinfo or timezone.utc
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
