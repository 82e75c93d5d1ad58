"""
Connection registry for Ride Channels.

Maps each authenticated user to the single live connection that currently
represents them.
"""

from __future__ import annotations

import threading

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection

logger = get_logger(__name__)


class ConnectionRegistry:
    """
    Tracks the live connection for each user.

    At most one connection is registered per user; registering a second one
    replaces the first and hands it back so the caller can evict it.
    """

    def __init__(self) -> None:
        # user_id -> Connection
        self._connections: dict[str, Connection] = {}
        self._lock = threading.RLock()

    def register(self, connection: Connection) -> Connection | None:
        """
        Record a connection as the live one for its user.

        Args:
            connection: The newly authenticated connection

        Returns:
            Connection | None: The connection that was replaced, if any
        """
        with self._lock:
            previous = self._connections.get(connection.user_id)
            self._connections[connection.user_id] = connection

        if previous is not None and previous is not connection:
            logger.info(
                "Connection superseded",
                user_id=connection.user_id,
                old_connection_id=previous.connection_id,
                new_connection_id=connection.connection_id,
            )
            return previous

        logger.debug("Connection registered", user_id=connection.user_id, connection_id=connection.connection_id)
        return None

    def lookup(self, user_id: str) -> Connection | None:
        """Return the live connection for a user, or None if they are offline."""
        with self._lock:
            return self._connections.get(user_id)

    def remove(self, user_id: str, connection: Connection | None = None) -> bool:
        """
        Remove a user's registry entry.

        Args:
            user_id: The user to remove
            connection: When given, only remove the entry if it is still this connection

        Returns:
            bool: True if an entry was removed
        """
        with self._lock:
            current = self._connections.get(user_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                return False
            del self._connections[user_id]

        logger.debug("Connection unregistered", user_id=user_id, connection_id=current.connection_id)
        return True

    def size(self) -> int:
        """Number of users currently connected."""
        with self._lock:
            return len(self._connections)

    def snapshot(self) -> list[Connection]:
        """Copy of all live connections."""
        with self._lock:
            return list(self._connections.values())

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._connections
