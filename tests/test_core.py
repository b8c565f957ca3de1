"""Configuration, error codes, logging setup and the database manager."""

import json
import logging

import pytest
from pydantic import ValidationError
from pythonjsonlogger.json import JsonFormatter
from sqlalchemy import text

from datacore.core.config import DatabaseSettings, Settings, get_database_url, get_settings
from datacore.core.database import DatabaseManager
from datacore.core.exceptions import CoreException, DatabaseError, ErrorCode, ServiceNotRegisteredError
from datacore.core.logging import (
    CustomJsonFormatter,
    LoggingConfig,
    get_logger,
    operation_id,
    operation_scope,
    setup_logging,
)
from tests.models import Base


class TestSettings:
    def test_defaults(self):
        settings = get_settings()

        assert settings.ENVIRONMENT == "development"
        assert settings.database.is_sqlite
        assert settings.logging.LOG_FORMAT == "console"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "testing")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DB_URL", "postgresql+asyncpg://db/app")

        settings = Settings()

        assert settings.is_testing
        assert settings.logging.LOG_LEVEL == "DEBUG"
        assert not settings.database.is_sqlite

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    @pytest.mark.parametrize("name, value", [("ENVIRONMENT", "moon"), ("LOG_FORMAT", "xml")])
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            Settings()

    def test_database_url_override(self):
        assert get_database_url("sqlite+aiosqlite:///other.db") == "sqlite+aiosqlite:///other.db"
        assert get_database_url() == get_settings().database.DB_URL


class TestExceptions:
    def test_format_uses_standard_message(self):
        error = CoreException.format(ErrorCode.NO_SERVICE, scope="tests")

        assert error.error_code is ErrorCode.NO_SERVICE
        assert error.details == {"scope": "tests"}
        assert str(error).startswith("NO_SERVICE: No service found")

    def test_to_dict(self):
        error = ServiceNotRegisteredError(Base)

        payload = error.to_dict()["error"]

        assert payload["code"] == "SERVICE_NOT_REGISTERED"
        assert payload["type"] == "ServiceNotRegisteredError"
        assert payload["details"]["service_type"].endswith("models.Base")


class TestLogging:
    def test_get_logger_defaults_to_caller_module(self):
        assert get_logger().logger.name == __name__

    def test_context_is_passed_as_extra(self, caplog):
        logger = get_logger("datacore.tests").add_context(request="r-1")

        with caplog.at_level(logging.INFO, logger="datacore.tests"):
            logger.info("hello")

        assert caplog.records[-1].request == "r-1"

    def test_bind_leaves_parent_context_untouched(self):
        parent = get_logger("datacore.tests").add_context(request="r-1")
        child = parent.bind(operation="count")

        assert child.extra == {"request": "r-1", "operation": "count"}
        assert parent.extra == {"request": "r-1"}

    def test_operation_scope_sets_and_resets_id(self):
        with operation_scope("op-7") as op_id:
            assert op_id == "op-7"
            assert operation_id.get() == "op-7"

        assert operation_id.get() is None

    def test_operation_scope_generates_id(self):
        with operation_scope() as op_id:
            assert len(op_id) == 32

    def test_json_formatter(self):
        record = logging.LogRecord("datacore.tests", logging.INFO, __file__, 10, "hello", None, None)

        payload = json.loads(CustomJsonFormatter("%(message)s").format(record))

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "datacore.tests"
        assert "operation_id" not in payload

    def test_json_formatter_builds_on_json_module(self):
        assert issubclass(CustomJsonFormatter, JsonFormatter)

    def test_configure_standard_logging_uses_json_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")

        LoggingConfig.configure_standard_logging()

        handlers = logging.getLogger("datacore").handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, CustomJsonFormatter)
        handlers.clear()

    def test_setup_logging_honours_sql_flag(self, monkeypatch):
        monkeypatch.setenv("LOG_SQL_QUERIES", "true")

        setup_logging()

        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
        logging.getLogger("datacore").handlers.clear()
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class TestDatabaseManager:
    async def test_lifecycle(self):
        manager = DatabaseManager(DatabaseSettings(DB_URL="sqlite+aiosqlite:///:memory:"))

        await manager.create_all(Base.metadata)
        async with manager.session() as session:
            assert await session.scalar(text("SELECT count(*) FROM products")) == 0

        assert manager.is_initialized
        assert manager.get_stats()["created_connections"] >= 1

        await manager.close()
        assert not manager.is_initialized

    async def test_initialize_failure_is_wrapped(self):
        manager = DatabaseManager(DatabaseSettings(DB_URL="sqlite+aiosqlite:////nonexistent/dir/app.db"))

        with pytest.raises(DatabaseError) as exc_info:
            await manager.initialize()

        assert exc_info.value.error_code is ErrorCode.DATABASE_ERROR
        assert manager.engine is None
