"""Configuration package."""

from pawnbook.config.settings import (
    AppSettings,
    Settings,
    StorageSettings,
    get_settings,
    resolve_timezone,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "resolve_timezone",
    "validate_all_settings",
]
