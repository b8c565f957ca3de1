"""
Logging setup for the datacore package.

Log records go through the standard library under the ``datacore``
namespace, rendered as text or JSON (python-json-logger). structlog can be
layered on top for applications that log structured events. Records are
tagged with the current operation id when one is set.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, MutableMapping, Optional, Tuple

import structlog
from pythonjsonlogger.json import JsonFormatter

from .config import get_settings

PACKAGE_LOGGER = "datacore"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Correlates the log lines of one unit of work or request
operation_id: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)


@contextmanager
def operation_scope(op_id: Optional[str] = None) -> Iterator[str]:
    """Tag every record logged inside the block with an operation id."""
    value = op_id or uuid.uuid4().hex
    token = operation_id.set(value)
    try:
        yield value
    finally:
        operation_id.reset(token)


def add_operation_id(logger, method_name, event_dict):
    """structlog processor adding the operation id and service identity."""
    op_id = operation_id.get()
    if op_id:
        event_dict.setdefault("operation_id", op_id)
    settings = get_settings()
    event_dict.setdefault("service", settings.SERVICE_NAME)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter adding level, logger, source location and operation id"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["location"] = f"{record.module}:{record.funcName}:{record.lineno}"

        op_id = operation_id.get()
        if op_id:
            log_record["operation_id"] = op_id
        if record.exc_info and "exc_info" not in log_record:
            log_record["exception"] = self.formatException(record.exc_info)


class LoggingConfig:
    """Applies the logging section of the settings"""

    # Third-party loggers and the level they run at when SQL logging is off/on
    LIBRARY_LEVELS: Dict[str, Tuple[int, int]] = {
        "sqlalchemy.engine": (logging.WARNING, logging.INFO),
        "sqlalchemy.pool": (logging.WARNING, logging.WARNING),
        "aiosqlite": (logging.WARNING, logging.WARNING),
    }

    @staticmethod
    def configure_structured_logging():
        """Route structlog events through the standard ``logging`` handlers"""
        settings = get_settings()

        renderer = (
            structlog.processors.JSONRenderer()
            if settings.logging.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer(colors=False)
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                add_operation_id,
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.format_exc_info,
                renderer,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def configure_standard_logging():
        """Install a stdout handler on the ``datacore`` logger"""
        settings = get_settings()
        level = getattr(logging, settings.logging.LOG_LEVEL)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if settings.logging.LOG_FORMAT == "json":
            handler.setFormatter(CustomJsonFormatter(JSON_FORMAT))
        else:
            handler.setFormatter(logging.Formatter(TEXT_FORMAT))

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(level)
        package_logger.handlers.clear()
        package_logger.addHandler(handler)

        LoggingConfig._configure_library_loggers()

    @staticmethod
    def _configure_library_loggers():
        sql_enabled = get_settings().logging.LOG_SQL_QUERIES
        for name, (quiet, verbose) in LoggingConfig.LIBRARY_LEVELS.items():
            logging.getLogger(name).setLevel(verbose if sql_enabled else quiet)


class LoggerAdapter(logging.LoggerAdapter):
    """Standard logger adapter carrying persistent ``extra`` context"""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(context or {}))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        # Per-call extra wins over adapter context
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def add_context(self, **kwargs) -> "LoggerAdapter":
        self.extra.update(kwargs)
        return self

    def bind(self, **kwargs) -> "LoggerAdapter":
        """New adapter with this adapter's context plus ``kwargs``."""
        return LoggerAdapter(self.logger, {**self.extra, **kwargs})


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get a context-carrying logger.

    Args:
        name: Logger name; defaults to the calling module's ``__name__``
    """
    if name is None:
        caller = sys._getframe(1)
        name = caller.f_globals.get("__name__", PACKAGE_LOGGER)
    return LoggerAdapter(logging.getLogger(name))


def setup_logging() -> None:
    """Configure logging according to settings"""
    LoggingConfig.configure_standard_logging()
    if get_settings().logging.ENABLE_STRUCTURED_LOGGING:
        LoggingConfig.configure_structured_logging()
