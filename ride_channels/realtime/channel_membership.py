"""
Ride channel membership management for Ride Channels.

This module tracks which users are subscribed to which ride channels. A
channel exists only while it has at least one member.
"""

from __future__ import annotations

import threading

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ChannelMembershipTable:
    """
    Manages ride channel subscriptions.

    Every operation is atomic under the table's lock; sequences of operations
    are not.
    """

    def __init__(self) -> None:
        """Initialize the membership table."""
        # Ride channels (ride_id -> set of user_ids)
        self._channels: dict[str, set[str]] = {}
        self._lock = threading.RLock()

    def join(self, ride_id: str, user_id: str) -> int:
        """
        Subscribe a user to a ride channel, creating the channel if needed.

        Joining a channel twice has no further effect.

        Args:
            ride_id: The ride's ID
            user_id: The user's ID

        Returns:
            int: Member count after the join
        """
        with self._lock:
            members = self._channels.setdefault(ride_id, set())
            members.add(user_id)
            count = len(members)

        logger.debug("User joined ride channel", user_id=user_id, ride_id=ride_id, members=count)
        return count

    def leave(self, ride_id: str, user_id: str) -> int:
        """
        Unsubscribe a user from a ride channel.

        The channel is deleted once its last member leaves.

        Args:
            ride_id: The ride's ID
            user_id: The user's ID

        Returns:
            int: Remaining member count (0 if the channel no longer exists)
        """
        with self._lock:
            members = self._channels.get(ride_id)
            if members is None:
                return 0
            members.discard(user_id)
            remaining = len(members)
            if not members:
                del self._channels[ride_id]

        logger.debug("User left ride channel", user_id=user_id, ride_id=ride_id, members=remaining)
        return remaining

    def is_member(self, ride_id: str, user_id: str) -> bool:
        """Whether a user is currently subscribed to a ride channel."""
        with self._lock:
            return user_id in self._channels.get(ride_id, ())

    def members(self, ride_id: str) -> set[str]:
        """
        Get all users subscribed to a ride channel.

        Returns:
            set[str]: A copy of the member set; empty for an unknown channel
        """
        with self._lock:
            return set(self._channels.get(ride_id, ()))

    def leave_all(self, user_id: str) -> list[tuple[str, int]]:
        """
        Remove a user from every channel they belong to.

        Args:
            user_id: The user's ID

        Returns:
            list[tuple[str, int]]: (ride_id, remaining member count) for each affected channel
        """
        affected: list[tuple[str, int]] = []
        with self._lock:
            for ride_id in [r for r, members in self._channels.items() if user_id in members]:
                members = self._channels[ride_id]
                members.discard(user_id)
                affected.append((ride_id, len(members)))
                if not members:
                    del self._channels[ride_id]

        if affected:
            logger.debug("User removed from all ride channels", user_id=user_id, rides=[r for r, _ in affected])
        return affected

    def channel_count(self) -> int:
        """Number of channels that currently exist."""
        with self._lock:
            return len(self._channels)

    def channel_sizes(self) -> dict[str, int]:
        """Member count per channel."""
        with self._lock:
            return {ride_id: len(members) for ride_id, members in self._channels.items()}
