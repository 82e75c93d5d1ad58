"""
WebSocket message validation for Ride Channels.

Every inbound frame is checked here before it reaches a handler: size
limit, JSON depth limit, and the `{"type": ..., "data": {...}}` envelope.
"""

import json
from typing import Any

from ..error_types import ErrorType
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class MessageValidationError(Exception):
    """Raised when an inbound frame is rejected before routing."""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.INVALID_FORMAT):
        self.message = message
        self.error_type = error_type
        super().__init__(self.message)


class WebSocketMessageValidator:
    """
    Validates inbound WebSocket frames.

    Implements:
    - Message size limits (DoS protection)
    - JSON depth limits (prevent stack overflow)
    - Envelope validation
    """

    MAX_MESSAGE_SIZE = 10 * 1024
    MAX_JSON_DEPTH = 10

    def __init__(self, max_message_size: int | None = None, max_json_depth: int | None = None):
        """
        Initialize the message validator.

        Args:
            max_message_size: Maximum message size in bytes (default: 10KB)
            max_json_depth: Maximum JSON nesting depth (default: 10)
        """
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH

    def validate_size(self, data: str) -> None:
        """
        Validate message size.

        Raises:
            MessageValidationError: If message exceeds size limit
        """
        size = len(data.encode("utf-8"))
        if size > self.max_message_size:
            logger.warning(
                "Message size exceeds limit",
                size=size,
                max_size=self.max_message_size,
                size_exceeded_by=size - self.max_message_size,
            )
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type=ErrorType.INVALID_INPUT,
            )

    def validate_json_structure(self, message: Any) -> None:
        """
        Validate JSON nesting depth.

        Raises:
            MessageValidationError: If the structure is nested too deeply
        """
        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            logger.warning("JSON depth exceeds limit", depth=depth, max_depth=self.max_json_depth)
            raise MessageValidationError(
                f"JSON depth {depth} exceeds maximum {self.max_json_depth}",
                error_type=ErrorType.INVALID_INPUT,
            )

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        if current_depth > self.max_json_depth:
            return current_depth

        if isinstance(obj, dict):
            if not obj:
                return current_depth
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            if not obj:
                return current_depth
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def validate_envelope(self, message: Any) -> None:
        """
        Validate the event envelope.

        Raises:
            MessageValidationError: If the frame is not an object with a string `type`
                and an optional object `data`
        """
        if not isinstance(message, dict):
            raise MessageValidationError("Message must be a JSON object")

        message_type = message.get("type")
        if not isinstance(message_type, str) or not message_type.strip():
            raise MessageValidationError("Message must contain a 'type' field")

        data = message.get("data")
        if data is not None and not isinstance(data, dict):
            raise MessageValidationError("Message 'data' must be a JSON object")

    def parse_and_validate(self, data: str, user_id: str) -> dict[str, Any]:
        """
        Parse and validate a complete WebSocket frame.

        Args:
            data: Raw frame text
            user_id: Sender, for log context

        Returns:
            dict: The parsed envelope, with `data` defaulted to an empty object

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data)

        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in message", user_id=user_id, error=str(e))
            raise MessageValidationError(f"Invalid JSON: {e}") from e

        self.validate_json_structure(message)
        self.validate_envelope(message)

        if message.get("data") is None:
            message["data"] = {}

        logger.debug("Message validation successful", user_id=user_id, message_type=message["type"])
        return message
