"""
Dependency Injection Container for Ride Channels.

Owns every piece of shared realtime state so that nothing lives in a module
global. One container is created per application.

USAGE:
    # In the app factory:
    container = RealtimeContainer(config)
    app.state.container = container

    # In endpoints:
    container = websocket.app.state.container

    # In tests:
    container = RealtimeContainer(AppConfig())
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .realtime.channel_membership import ChannelMembershipTable
from .realtime.connection_models import CLOSE_GOING_AWAY
from .realtime.connection_registry import ConnectionRegistry
from .realtime.message_handler_factory import MessageHandlerFactory
from .realtime.message_validator import WebSocketMessageValidator
from .structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from .config.models import AppConfig

logger = get_logger(__name__)


class RealtimeContainer:
    """Shared state for the socket layer: config, both tables, validator and router."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.connection_registry = ConnectionRegistry()
        self.channel_membership = ChannelMembershipTable()
        self.message_validator = WebSocketMessageValidator(
            max_message_size=config.realtime.max_message_size,
            max_json_depth=config.realtime.max_json_depth,
        )
        self.message_router = MessageHandlerFactory(self.connection_registry, self.channel_membership)

    def close_all_connections(self, reason: str = "server-shutdown") -> int:
        """
        Ask every live connection to close with a going-away code.

        Returns:
            int: Number of connections asked to close
        """
        connections = self.connection_registry.snapshot()
        for connection in connections:
            connection.request_close(CLOSE_GOING_AWAY, reason)
        logger.info("Requested close of all connections", count=len(connections), reason=reason)
        return len(connections)

    def get_stats(self) -> dict[str, object]:
        """Connection and channel counts for diagnostics."""
        return {
            "connections": self.connection_registry.size(),
            "channels": self.channel_membership.channel_count(),
            "channel_members": self.channel_membership.channel_sizes(),
        }
