"""
Exception hierarchy for the Ride Channels server.

Errors carry structured context and log themselves on construction so that
a refused connection or a rejected event leaves a single, complete log entry.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .error_types import ErrorType
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to an error."""

    user_id: str | None = None
    ride_id: str | None = None
    event: str | None = None
    connection_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "ride_id": self.ride_id,
            "event": self.event,
            "connection_id": self.connection_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class RideChannelsError(Exception):
    """
    Base exception for all Ride Channels errors.

    Provides structured error handling with context and metadata.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log = getattr(logger, self.log_level)
        log(
            "Ride channels error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )


class AuthenticationError(RideChannelsError):
    """A connection credential was missing, invalid or expired."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        reason: ErrorType = ErrorType.INVALID_CREDENTIAL,
        details: dict[str, Any] | None = None,
        **kwargs,
    ):
        details = {**(details or {}), "reason": reason.value}
        super().__init__(message, context, details=details, **kwargs)
        self.reason = reason


class EventValidationError(RideChannelsError):
    """An inbound socket event is missing a required field or carries a bad value."""

    log_level = "info"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field_name: str | None = None,
        error_type: ErrorType = ErrorType.MISSING_REQUIRED_FIELD,
        details: dict[str, Any] | None = None,
        **kwargs,
    ):
        details = dict(details or {})
        if field_name:
            details["field"] = field_name
        super().__init__(message, context, details=details, **kwargs)
        self.field_name = field_name
        self.error_type = error_type
