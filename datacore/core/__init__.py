"""
Core infrastructure: configuration, logging, exceptions and database access.
"""

from datacore.core.config import Settings, get_settings, clear_settings_cache
from datacore.core.exceptions import (
    ErrorCode,
    CoreException,
    ServiceNotRegisteredError,
    DatabaseError,
)
from datacore.core.logging import get_logger, LoggingConfig, operation_scope, setup_logging
from datacore.core.database import Base, DatabaseManager

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ErrorCode",
    "CoreException",
    "ServiceNotRegisteredError",
    "DatabaseError",
    "get_logger",
    "LoggingConfig",
    "operation_scope",
    "setup_logging",
    "Base",
    "DatabaseManager",
]
