"""Tests for settings and structured logging."""
import io
import json
import logging
import sys

import pytest

from app.core.config import DEVELOPMENT_SECRET, Settings
from app.core.logging import (
    ContextLogger,
    JSONFormatter,
    LogTimer,
    RequestContextFilter,
    bind_request,
    current_request_id,
    get_logger,
    setup_logging,
    unbind_request,
)


class TestSettings:
    """Environment-driven settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.app_name == "Rails App"
        assert settings.jwt_algorithm == "HS256"
        assert settings.password_min_length == 6
        assert settings.templates_dir.name == "templates"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("APP_NAME", "Blog")
        monkeypatch.setenv("REDIS_PORT", "6380")

        settings = Settings()

        assert settings.app_name == "Blog"
        assert settings.redis_port == 6380

    def test_field_names_are_accepted(self):
        assert Settings(app_name="Blog").app_name == "Blog"

    def test_is_production(self):
        assert Settings(ENVIRONMENT="production").is_production
        assert not Settings(ENVIRONMENT="development").is_production

    def test_development_secret_rejected_in_production(self):
        settings = Settings(ENVIRONMENT="production", JWT_SECRET_KEY=DEVELOPMENT_SECRET)

        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            settings.validate_required_settings()

    def test_production_with_secret(self):
        Settings(ENVIRONMENT="production", JWT_SECRET_KEY="s" * 40).validate_required_settings()

    def test_empty_app_name_rejected(self):
        with pytest.raises(ValueError, match="APP_NAME"):
            Settings(APP_NAME="").validate_required_settings()


class TestJSONFormatter:
    """JSON log lines."""

    def _record(self, **extra):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "app.test"
        assert data["message"] == "hello world"
        assert data["timestamp"].endswith("Z")

    def test_context_fields(self):
        data = json.loads(JSONFormatter().format(self._record(request_id="abc", duration_ms=1.5, unrelated="x")))

        assert data["request_id"] == "abc"
        assert data["duration_ms"] == 1.5
        assert "unrelated" not in data

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("app.test", logging.ERROR, __file__, 10, "failed", (), sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"


class TestLoggers:
    """Logger helpers."""

    def test_get_logger_with_context(self):
        logger = get_logger("app.test", {"request_id": "abc"})

        assert isinstance(logger, ContextLogger)

    def test_context_is_added_to_records(self, caplog):
        logger = get_logger("app.test", {"request_id": "abc"})

        with caplog.at_level(logging.INFO, logger="app.test"):
            logger.info("hello")

        assert caplog.records[-1].request_id == "abc"

    def test_log_timer(self, caplog):
        logger = get_logger("app.test")

        with caplog.at_level(logging.INFO, logger="app.test"):
            with LogTimer(logger, "render") as timer:
                pass

        assert timer.duration_ms is not None
        assert caplog.records[-1].operation == "render"
        assert "render completed" in caplog.records[-1].getMessage()

    def test_log_timer_failure(self, caplog):
        logger = get_logger("app.test")

        with caplog.at_level(logging.INFO, logger="app.test"):
            with pytest.raises(KeyError):
                with LogTimer(logger, "render"):
                    raise KeyError("x")

        assert caplog.records[-1].levelname == "ERROR"


class TestRequestContext:
    """Request-scoped log context."""

    def test_bound_values_are_added_to_records(self):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "hello", (), None)
        token = bind_request(request_id="abc", path="/")
        try:
            RequestContextFilter().filter(record)
            assert current_request_id() == "abc"
        finally:
            unbind_request(token)

        assert record.request_id == "abc"
        assert record.path == "/"
        assert current_request_id() is None

    def test_explicit_extra_wins(self):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "hello", (), None)
        record.request_id = "explicit"
        token = bind_request(request_id="bound")
        try:
            RequestContextFilter().filter(record)
        finally:
            unbind_request(token)

        assert record.request_id == "explicit"

    def test_placeholder_outside_requests(self):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "hello", (), None)

        RequestContextFilter().filter(record)

        assert record.request_id == "-"
        assert "request_id" not in json.loads(JSONFormatter().format(record))


class TestSetupLogging:
    """Root logger configuration."""

    def test_json_output(self):
        stream = io.StringIO()
        root = logging.getLogger()
        previous_level = root.level
        try:
            setup_logging(level="INFO", json_format=True, stream=stream)
            logging.getLogger("app.test").info("structured")
        finally:
            setup_logging(level=logging.getLevelName(previous_level), json_format=False)

        assert json.loads(stream.getvalue().splitlines()[-1])["message"] == "structured"

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging(level="LOUD")
