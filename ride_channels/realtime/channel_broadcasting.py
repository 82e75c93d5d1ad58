"""
Delivery helpers for ride channel events.

Both helpers resolve recipients through the registry at call time and only
queue frames; a recipient that went away in the meantime is skipped.
"""

from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .channel_membership import ChannelMembershipTable
from .connection_registry import ConnectionRegistry

logger = get_logger(__name__)


def send_to_user(registry: ConnectionRegistry, user_id: str, event_type: str, data: dict[str, Any]) -> bool:
    """
    Unicast an event to a user's live connection.

    Returns:
        bool: True if the user was connected and the event was queued
    """
    connection = registry.lookup(user_id)
    if connection is None:
        logger.debug("Unicast target not connected", user_id=user_id, event_type=event_type)
        return False
    return connection.send(event_type, data)


def broadcast_to_channel(
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
    ride_id: str,
    event_type: str,
    data: dict[str, Any],
    exclude_user_id: str | None = None,
) -> int:
    """
    Send an event to every connected member of a ride channel.

    Args:
        registry: Live connections
        membership: Channel membership table
        ride_id: Target channel
        event_type: Event name
        data: Event payload
        exclude_user_id: Member to skip (usually the sender)

    Returns:
        int: Number of members the event was queued for
    """
    delivered = 0
    for member_id in membership.members(ride_id):
        if member_id == exclude_user_id:
            continue
        if send_to_user(registry, member_id, event_type, data):
            delivered += 1

    logger.debug("Broadcast to ride channel", ride_id=ride_id, event_type=event_type, delivered=delivered)
    return delivered
