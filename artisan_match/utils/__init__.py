"""
Utility modules for Artisan Match.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Application-wide constants
- concurrency: Fan-out/join and timeout helpers
"""

from artisan_match.utils.config import (
    AppSettings,
    get_settings,
    reload_settings,
    settings,
    ROOT_DIR,
    PACKAGE_DIR,
    DATA_DIR,
)
from artisan_match.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    ExperienceLevel,
    InteractionKind,
    PriceCategory,
    QueryType,
    SearchMode,
)
from artisan_match.utils.logger import (
    setup_logging,
    get_logger,
    audit_log,
    log,
)

__all__ = [
    # Config
    "AppSettings",
    "get_settings",
    "reload_settings",
    "settings",
    "ROOT_DIR",
    "PACKAGE_DIR",
    "DATA_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "ExperienceLevel",
    "InteractionKind",
    "PriceCategory",
    "QueryType",
    "SearchMode",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "log",
]
