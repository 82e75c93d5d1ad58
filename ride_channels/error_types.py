"""
Centralized error types and constants for Ride Channels.

Every `error` event sent over a socket carries one of these codes so clients
can branch on it without parsing the human readable message.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Authentication
    MISSING_CREDENTIAL = "missing-credential"
    INVALID_CREDENTIAL = "invalid-credential"
    EXPIRED_CREDENTIAL = "expired-credential"

    # Validation
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_INPUT = "invalid_input"
    INVALID_FORMAT = "invalid_format"
    INVALID_COMMAND = "invalid_command"

    # Real-time Communication
    MESSAGE_PROCESSING_ERROR = "message_processing_error"


class ErrorMessages:
    """Common error messages for consistent user experience."""

    RIDE_ID_REQUIRED_TO_JOIN = "Ride ID is required to join a channel"
    RIDE_ID_REQUIRED = "Ride ID is required"
    MISSING_REQUIRED_FIELDS = "Missing required fields"
    TIMESTAMP_REQUIRED = "Timestamp is required"
    INVALID_FORMAT = "Invalid message format"
    MESSAGE_PROCESSING_ERROR = "Error processing message"


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create the payload of an outbound `error` event.

    Args:
        error_type: The type of error
        message: Message shown to the client
        details: Additional error details (optional)

    Returns:
        Error event payload
    """
    payload: dict[str, Any] = {"message": message, "code": error_type.value}
    if details:
        payload["details"] = details
    return payload
