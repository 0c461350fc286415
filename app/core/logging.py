"""Structured logging.

JSON lines in production, a readable console format elsewhere. The request
middleware binds a request id with ``bind_request``; every record logged while
the request is handled carries it, whichever module emits the record.
"""
import json
import logging
import sys
import time
import traceback
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Attributes copied from a record's ``extra`` into the JSON payload
CONTEXT_FIELDS = (
    "request_id", "user_id", "record_id", "method", "path", "client",
    "status_code", "duration_ms", "error_type", "operation", "version",
)

_request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})


def bind_request(**values: Any) -> Token:
    """Attach values (``request_id``, ``method``, ...) to the current request's logs."""
    return _request_context.set({**_request_context.get(), **values})


def unbind_request(token: Token) -> None:
    _request_context.reset(token)


def current_request_id() -> Optional[str]:
    return _request_context.get().get("request_id")


class RequestContextFilter(logging.Filter):
    """Copy the bound request context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _request_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation services."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in CONTEXT_FIELDS:
            value = getattr(record, attr, None)
            if value is not None and value != "-":
                payload[attr] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(payload, default=str)


CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that adds fixed context to every record.

    Example:
        >>> logger = ContextLogger(logging.getLogger("app.api"), {"operation": "scaffold"})
        >>> logger.info("Rendering")
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines (production) instead of the console format
        stream: Output stream, stdout by default

    Returns:
        Configured root logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(CONSOLE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for existing in [h for h in root_logger.handlers if getattr(h, "_app_handler", False)]:
        root_logger.removeHandler(existing)
    handler._app_handler = True
    root_logger.addHandler(handler)

    # Request lines are logged by our own middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Module logger, wrapped in a ``ContextLogger`` when context is given."""
    logger = logging.getLogger(name)
    if context:
        return ContextLogger(logger, context)
    return logger


class LogTimer:
    """Time a block and log its duration.

    Example:
        >>> with LogTimer(logger, "render_controller_test:posts"):
        ...     source = template.render(**context)
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.duration_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        extra = {"operation": self.operation, "duration_ms": round(self.duration_ms, 2)}

        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed after {self.duration_ms:.1f}ms",
                extra=extra,
                exc_info=(exc_type, exc_val, exc_tb),
            )
        else:
            self.logger.log(self.level, f"{self.operation} completed in {self.duration_ms:.1f}ms", extra=extra)
        return False
