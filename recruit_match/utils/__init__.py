"""
Utility modules for recruit-match.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Application-wide constants
"""

from recruit_match.utils.config import (
    AppSettings,
    get_settings,
    reload_settings,
    ROOT_DIR,
    DATA_DIR,
)
from recruit_match.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    BuildState,
    EntityKind,
    MatchScoreLevel,
    ResultStatus,
    AuditAction,
)
from recruit_match.utils.logger import (
    setup_logging,
    get_logger,
    audit_log,
    LoggerMixin,
    log,
)

__all__ = [
    # Config
    "AppSettings",
    "get_settings",
    "reload_settings",
    "ROOT_DIR",
    "DATA_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "BuildState",
    "EntityKind",
    "MatchScoreLevel",
    "ResultStatus",
    "AuditAction",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "LoggerMixin",
    "log",
]
