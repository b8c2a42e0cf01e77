"""
hchat - Structured Logging

Structured logging on top of the standard library.

Features:
- JSON-formatted log lines
- Correlation fields (request_id, provider, model) from a context variable
  or bound on the logger
- Sensitive field redaction (api keys, authorization headers)

The library never configures logging on import. ``setup_logging`` runs
when ``HChatConfig.debug`` is set, when ``HCHAT_LOG_LEVEL`` is present in
the environment, or when the application calls it.

Usage:
    from hchat.observability.logging import setup_logging, get_logger

    setup_logging(level="DEBUG")

    logger = get_logger(__name__).bind(provider="claude")
    logger.debug("Stream opened", model="claude-sonnet-4")
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

_log_context: ContextVar[Optional["LogContext"]] = ContextVar("hchat_log_context", default=None)

ROOT_LOGGER_NAME = "hchat"

# LogRecord attributes that are never copied into the JSON body
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName", "asctime",
})


@dataclass
class LogContext:
    """
    Logging context with correlation IDs.

    Safe across asyncio tasks because it lives in a ContextVar.
    """
    request_id: str = ""
    provider: str = ""
    model: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        return _log_context.get()

    @classmethod
    def set_current(cls, ctx: "LogContext"):
        _log_context.set(ctx)

    @classmethod
    def clear(cls):
        _log_context.set(None)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        if self.request_id:
            result["request_id"] = self.request_id
        if self.provider:
            result["provider"] = self.provider
        if self.model:
            result["model"] = self.model
        result.update(self.extra)
        return result


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123456+00:00",
        "level": "DEBUG",
        "logger": "hchat.client",
        "message": "Stream opened",
        "request_id": "req_abc123",
        "provider": "claude",
        ... additional fields
    }
    """

    SENSITIVE_FIELDS = {
        "password", "secret", "token", "api_key", "apikey",
        "authorization", "credential",
    }

    def __init__(self, include_location: bool = False, redact_sensitive: bool = True):
        super().__init__()
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_location:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = LogContext.get_current()
        if ctx:
            log_data.update(ctx.to_dict())

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if self.redact_sensitive and self._is_sensitive(key):
                value = "[REDACTED]"
            log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _is_sensitive(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


class StructuredLogger:
    """
    Logger wrapper that turns keyword arguments into structured fields.

        logger.debug("Tool call fragment", index=0, name="get_weather")
    """

    def __init__(self, logger: logging.Logger, bound: Optional[Dict[str, Any]] = None):
        self._logger = logger
        self._bound = dict(bound or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **fields) -> "StructuredLogger":
        """Return a logger that adds ``fields`` to every record."""
        return StructuredLogger(self._logger, {**self._bound, **fields})

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(self, level: int, msg: str, *args, **kwargs):
        if not self._logger.isEnabledFor(level):
            return

        extra = dict(self._bound)
        extra.update(kwargs.pop("extra", {}))

        ctx = LogContext.get_current()
        if ctx:
            for key, value in ctx.to_dict().items():
                extra.setdefault(key, value)

        for key in list(kwargs):
            if key not in {"exc_info", "stack_info", "stacklevel"}:
                extra[key] = kwargs.pop(key)

        # Avoid KeyError from LogRecord for reserved attribute names
        extra = {
            (f"field_{key}" if key in _RESERVED_ATTRS else key): value
            for key, value in extra.items()
        }

        kwargs["extra"] = extra
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self._log(logging.ERROR, msg, *args, **kwargs)


_logging_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    include_location: bool = False,
    redact_sensitive: bool = True,
) -> None:
    """
    Install a handler on the ``hchat`` logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSONFormatter (True) or a plain text format (False)
        include_location: Include filename:lineno in JSON output
        redact_sensitive: Redact fields like api_key and authorization
    """
    global _logging_configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_output:
        formatter: logging.Formatter = JSONFormatter(
            include_location=include_location,
            redact_sensitive=redact_sensitive,
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    package_logger.addHandler(handler)
    package_logger.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _logging_configured = True


def reset_logging() -> None:
    """Remove handlers installed by setup_logging (for tests)."""
    global _logging_configured

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    _logging_configured = False


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Configures the package logger from ``HCHAT_LOG_LEVEL`` and
    ``HCHAT_LOG_FORMAT`` the first time, if those are set.
    """
    if not _logging_configured and os.getenv("HCHAT_LOG_LEVEL"):
        setup_logging(
            level=os.getenv("HCHAT_LOG_LEVEL", "INFO"),
            json_output=os.getenv("HCHAT_LOG_FORMAT", "json").lower() == "json",
        )

    return StructuredLogger(logging.getLogger(name))
