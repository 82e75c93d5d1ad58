"""
Message Handler Factory for ride channel event routing.

Maps each inbound event type to its handler with a dict lookup, and turns
handler failures into `error` events for the sender so that nothing a client
sends can break its connection loop.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..exceptions import EventValidationError
from ..structured_logging.enhanced_logging_config import get_logger
from .channel_membership import ChannelMembershipTable
from .connection_models import Connection
from .connection_registry import ConnectionRegistry
from .message_handlers import (
    handle_join_request,
    handle_join_ride_channel,
    handle_leave_ride_channel,
    handle_ping_message,
    handle_request_response,
)

logger = get_logger(__name__)


class MessageHandler(ABC):
    """Abstract base class for message handlers."""

    @abstractmethod
    async def handle(
        self,
        connection: Connection,
        data: dict[str, Any],
        registry: ConnectionRegistry,
        membership: ChannelMembershipTable,
    ) -> None:
        """
        Handle a specific message type.

        Args:
            connection: The sender's connection
            data: The message data
            registry: Live connections
            membership: Ride channel membership
        """


class PingMessageHandler(MessageHandler):
    """Handler for ping messages, answered with `reply_event`."""

    def __init__(self, reply_event: str = "pong"):
        self.reply_event = reply_event

    async def handle(self, connection, data, registry, membership) -> None:
        await handle_ping_message(connection, data, registry, membership, reply_event=self.reply_event)


class JoinRideChannelHandler(MessageHandler):
    """Handler for join_ride_channel messages."""

    async def handle(self, connection, data, registry, membership) -> None:
        await handle_join_ride_channel(connection, data, registry, membership)


class JoinRequestHandler(MessageHandler):
    """Handler for join_request messages."""

    async def handle(self, connection, data, registry, membership) -> None:
        await handle_join_request(connection, data, registry, membership)


class RequestResponseHandler(MessageHandler):
    """Handler for request_response messages."""

    async def handle(self, connection, data, registry, membership) -> None:
        await handle_request_response(connection, data, registry, membership)


class LeaveRideChannelHandler(MessageHandler):
    """Handler for leave_ride_channel messages."""

    async def handle(self, connection, data, registry, membership) -> None:
        await handle_leave_ride_channel(connection, data, registry, membership)


class MessageHandlerFactory:
    """
    Routes inbound events to their handlers.

    Each connection's events are routed one at a time, in arrival order, by
    that connection's read loop.
    """

    def __init__(self, registry: ConnectionRegistry, membership: ChannelMembershipTable):
        """Initialize the factory with registered handlers."""
        self.registry = registry
        self.membership = membership
        self._handlers: dict[str, MessageHandler] = {
            "ping": PingMessageHandler(),
            "ping_server": PingMessageHandler(reply_event="pong_server"),  # Mobile debug screen heartbeat
            "join_ride_channel": JoinRideChannelHandler(),
            "join_request": JoinRequestHandler(),
            "request_response": RequestResponseHandler(),
            "leave_ride_channel": LeaveRideChannelHandler(),
        }

    def register_handler(self, message_type: str, handler: MessageHandler) -> None:
        """
        Register a new message handler.

        Args:
            message_type: The message type to handle
            handler: The handler instance
        """
        self._handlers[message_type] = handler
        logger.debug("Registered handler for message type", message_type=message_type)

    def get_handler(self, message_type: str) -> MessageHandler | None:
        """Get a handler for the specified message type."""
        return self._handlers.get(message_type)

    def get_supported_message_types(self) -> list[str]:
        """List of supported message type strings."""
        return list(self._handlers.keys())

    async def handle_message(self, connection: Connection, message: dict[str, Any]) -> None:
        """
        Handle a validated inbound envelope.

        Validation failures and unexpected handler errors are reported to the
        sender as an `error` event; they are never raised to the caller.

        Args:
            connection: The sender's connection
            message: Envelope with `type` and `data`
        """
        message_type = message.get("type", "unknown")
        data = message.get("data") or {}

        handler = self.get_handler(message_type)
        if handler is None:
            logger.warning("Unknown message type", message_type=message_type, user_id=connection.user_id)
            connection.send(
                "error",
                create_websocket_error_response(
                    ErrorType.INVALID_COMMAND,
                    f"Unknown message type: {message_type}",
                    {"message_type": message_type},
                ),
            )
            return

        try:
            await handler.handle(connection, data, self.registry, self.membership)
        except EventValidationError as e:
            connection.send("error", create_websocket_error_response(e.error_type, e.user_friendly))
        except Exception as e:
            logger.error(
                "Error handling message",
                message_type=message_type,
                user_id=connection.user_id,
                error=str(e),
                exc_info=True,
            )
            connection.send(
                "error",
                create_websocket_error_response(
                    ErrorType.MESSAGE_PROCESSING_ERROR,
                    ErrorMessages.MESSAGE_PROCESSING_ERROR,
                    {"message_type": message_type},
                ),
            )
