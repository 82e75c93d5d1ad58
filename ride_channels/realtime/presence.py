"""
Presence cleanup for ride channel connections.

Runs once per connection when its socket goes away, for whatever reason.
"""

from ..structured_logging.enhanced_logging_config import get_logger
from .channel_broadcasting import broadcast_to_channel
from .channel_membership import ChannelMembershipTable
from .connection_models import Connection
from .connection_registry import ConnectionRegistry
from .envelope import utc_now_z

logger = get_logger(__name__)


def handle_disconnect(
    connection: Connection,
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
) -> list[tuple[str, int]]:
    """
    Remove a closed connection from the registry and its ride channels.

    A connection that was superseded by a newer one for the same user only
    gives up its own registry slot; the user is still online, so channel
    memberships stay and nobody is told they left.

    Args:
        connection: The connection that closed
        registry: Live connections
        membership: Ride channel membership

    Returns:
        list[tuple[str, int]]: (ride_id, remaining members) for each channel the user left
    """
    if not registry.remove(connection.user_id, connection=connection):
        logger.debug(
            "Skipping channel cleanup for superseded connection",
            user_id=connection.user_id,
            connection_id=connection.connection_id,
        )
        return []

    affected = membership.leave_all(connection.user_id)
    timestamp = utc_now_z()
    for ride_id, remaining in affected:
        if remaining == 0:
            logger.debug("Ride channel emptied", ride_id=ride_id)
            continue
        broadcast_to_channel(
            registry,
            membership,
            ride_id,
            "member_left",
            {"userId": connection.user_id, "timestamp": timestamp, "members": remaining},
        )

    logger.info(
        "User disconnected",
        user_id=connection.user_id,
        connection_id=connection.connection_id,
        rides_left=[ride_id for ride_id, _ in affected],
    )
    return affected
