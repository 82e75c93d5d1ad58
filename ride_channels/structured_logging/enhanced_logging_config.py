"""
Structlog-based logging configuration for Ride Channels.

Provides context variables (per-connection MDC), correlation IDs and
sanitization of credentials before anything reaches a handler.
"""

import json
import logging
import os
import re
import sys
import uuid
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

logger = structlog.get_logger(__name__)

_LOGGING_INITIALIZED = False
_LOGGING_SIGNATURE: str | None = None

SENSITIVE_KEYS = (
    "password",
    "token",
    "secret",
    "credential",
    "jwt",
    "api_key",
    "private_key",
    "access_token",
    "refresh_token",
    "bearer",
    "authorization",
)


def detect_environment() -> str:
    """
    Detect the current environment from process state.

    Returns:
        One of "unit_test", "production" or "local"
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return "unit_test"

    env = os.getenv("LOGGING_ENVIRONMENT") or os.getenv("ENV")
    if env in ("unit_test", "e2e_test", "production", "local"):
        return env

    return "local"


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Bearer tokens travel in query strings and subprotocol headers, so any key
    that looks like a credential is replaced before rendering.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif isinstance(key, str) and any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


class QueryTokenRedactionFilter(logging.Filter):
    """
    Scrub `token=` query values from rendered log lines.

    Uvicorn logs the request path with its query string, and those records
    never pass through the structlog processors.
    """

    pattern = re.compile(r"(?i)([?&]token=)[^&\s\"']+")

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.pattern.sub(r"\1[REDACTED]", message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add a correlation ID to log entries that do not already carry one."""
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())
    return event_dict


def _select_renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "colored":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_structlog(environment: str | None = None, log_level: str = "INFO", log_format: str = "colored") -> None:
    """
    Configure structlog on top of the standard library logging module.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: One of "json", "human" or "colored"
    """
    if environment is None:
        environment = detect_environment()

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers = []
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(QueryTokenRedactionFilter())
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    processors = [
        # Merge context first so bound tokens get sanitized too
        merge_contextvars,
        sanitize_sensitive_data,
        add_correlation_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _select_renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the logging section of the application config.

    Args:
        config: Dictionary with "environment", "level" and "format" keys
        force_reconfigure: When True, reconfigure even if already initialized
    """
    global _LOGGING_INITIALIZED
    global _LOGGING_SIGNATURE

    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _LOGGING_INITIALIZED and not force_reconfigure:
        get_logger("ride_channels.logging.setup").debug(
            "setup_logging skipped; logging system already initialized",
            config_signature=_LOGGING_SIGNATURE,
        )
        return

    environment = config.get("environment", detect_environment())
    log_level = config.get("level", "INFO")
    log_format = config.get("format", "colored")

    configure_structlog(environment, log_level, log_format)
    _configure_uvicorn_logging()

    get_logger("ride_channels.logging.setup").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_format=log_format,
    )

    _LOGGING_INITIALIZED = True
    _LOGGING_SIGNATURE = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handler."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def bind_request_context(
    correlation_id: str | None = None,
    user_id: str | None = None,
    connection_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Bind connection context to the current logging context.

    Every log entry emitted from the same task afterwards includes these values.

    Args:
        correlation_id: Unique correlation ID (generated when omitted)
        user_id: Authenticated user identity, if known
        connection_id: Connection identifier, if known
        **kwargs: Additional context variables
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    context_vars = {
        "correlation_id": correlation_id,
        "user_id": user_id,
        "connection_id": connection_id,
        **kwargs,
    }
    bind_contextvars(**{k: v for k, v in context_vars.items() if v is not None})


def clear_request_context() -> None:
    """Clear the current connection context from logging."""
    clear_contextvars()


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
