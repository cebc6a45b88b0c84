"""
Utility modules for the Internship Matcher service.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Application-wide constants
"""

from src.utils.config import (
    AppSettings,
    get_settings,
    reload_settings,
    ROOT_DIR,
    SRC_DIR,
    DATA_DIR,
)
from src.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    MATERIAL_FIELDS,
    EmbedStatus,
    EntityKind,
)
from src.utils.logger import (
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
    "ROOT_DIR",
    "SRC_DIR",
    "DATA_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "MATERIAL_FIELDS",
    "EmbedStatus",
    "EntityKind",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "log",
]
