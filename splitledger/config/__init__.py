"""Configuration package."""

from splitledger.config.logging import configure_logging
from splitledger.config.settings import (
    AppSettings,
    LedgerApiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "LedgerApiSettings",
    "Settings",
    "configure_logging",
    "get_settings",
    "validate_all_settings",
]
