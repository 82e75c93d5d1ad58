"""
Message handler implementations for ride channel events.

This module contains the actual implementations of message handlers,
separated from the factory to avoid circular imports. Handlers mutate the
registry and membership tables synchronously and only queue outbound frames,
so they never wait on another connection's socket.
"""

from typing import Any

from ..error_types import ErrorMessages, ErrorType
from ..exceptions import ErrorContext, EventValidationError
from ..structured_logging.enhanced_logging_config import get_logger
from .channel_broadcasting import broadcast_to_channel, send_to_user
from .channel_membership import ChannelMembershipTable
from .connection_models import Connection
from .connection_registry import ConnectionRegistry
from .envelope import epoch_millis, utc_now_z

logger = get_logger(__name__)

REQUEST_STATUSES = ("accepted", "rejected")
CHANNEL_JOINED_MESSAGE = "You have joined the ride channel"


def _context(connection: Connection, event: str, ride_id: str | None = None) -> ErrorContext:
    return ErrorContext(
        user_id=connection.user_id,
        ride_id=ride_id,
        event=event,
        connection_id=connection.connection_id,
    )


def _optional_str(data: dict[str, Any], field_name: str) -> str | None:
    """Read an identifier field, accepting strings and integers; blank counts as missing."""
    value = data.get(field_name)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def require_field(
    connection: Connection,
    data: dict[str, Any],
    field_name: str,
    event: str,
    message: str,
) -> str:
    """
    Read a required identifier field from an event payload.

    Raises:
        EventValidationError: If the field is missing or blank
    """
    value = _optional_str(data, field_name)
    if value is None:
        raise EventValidationError(message, context=_context(connection, event), field_name=field_name)
    return value


async def handle_ping_message(
    connection: Connection,
    data: dict[str, Any],
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
    reply_event: str = "pong",
) -> None:
    """Echo the client's timestamp back with the server receive time and connection count."""
    timestamp = data.get("timestamp")
    if timestamp is None or timestamp == "":
        raise EventValidationError(
            ErrorMessages.TIMESTAMP_REQUIRED,
            context=_context(connection, "ping"),
            field_name="timestamp",
        )

    connection.send(
        reply_event,
        {
            "timestamp": timestamp,
            "received": epoch_millis(),
            "userId": connection.user_id,
            "connections": registry.size(),
        },
    )


async def handle_join_ride_channel(
    connection: Connection,
    data: dict[str, Any],
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
) -> None:
    """Subscribe the sender to a ride channel and acknowledge with the member count."""
    ride_id = require_field(connection, data, "rideId", "join_ride_channel", ErrorMessages.RIDE_ID_REQUIRED_TO_JOIN)

    members = membership.join(ride_id, connection.user_id)
    logger.info("User joined ride channel", user_id=connection.user_id, ride_id=ride_id, members=members)

    connection.send(
        "channel_joined",
        {"rideId": ride_id, "message": CHANNEL_JOINED_MESSAGE, "members": members},
    )


async def handle_join_request(
    connection: Connection,
    data: dict[str, Any],
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
) -> None:
    """Announce the sender's request to join a ride to the channel's other members."""
    ride_id = require_field(connection, data, "rideId", "join_request", ErrorMessages.RIDE_ID_REQUIRED)

    delivered = broadcast_to_channel(
        registry,
        membership,
        ride_id,
        "join_request",
        {
            "user": {"id": connection.user_id, "name": connection.display_name},
            "timestamp": utc_now_z(),
        },
        exclude_user_id=connection.user_id,
    )
    logger.info("Join request sent", user_id=connection.user_id, ride_id=ride_id, recipients=delivered)


async def handle_request_response(
    connection: Connection,
    data: dict[str, Any],
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
) -> None:
    """
    Record a driver's decision on a join request.

    The whole channel gets a `request_update`; the requester additionally gets
    a personal `request_status_changed` if they are connected.
    """
    ride_id = _optional_str(data, "rideId")
    target_user_id = _optional_str(data, "userId") or _optional_str(data, "targetUserId")
    status = _optional_str(data, "status")

    if ride_id is None or target_user_id is None or status is None:
        missing = [
            name
            for name, value in (("rideId", ride_id), ("userId", target_user_id), ("status", status))
            if value is None
        ]
        raise EventValidationError(
            ErrorMessages.MISSING_REQUIRED_FIELDS,
            context=_context(connection, "request_response", ride_id),
            details={"missing": missing},
        )

    status = status.lower()
    if status not in REQUEST_STATUSES:
        raise EventValidationError(
            f"Status must be one of: {', '.join(REQUEST_STATUSES)}",
            context=_context(connection, "request_response", ride_id),
            field_name="status",
            error_type=ErrorType.INVALID_INPUT,
        )

    broadcast_to_channel(
        registry,
        membership,
        ride_id,
        "request_update",
        {"userId": target_user_id, "status": status, "updatedAt": utc_now_z()},
    )

    notified = send_to_user(
        registry,
        target_user_id,
        "request_status_changed",
        {
            "rideId": ride_id,
            "status": status,
            "message": f"Your request to join ride {ride_id} was {status}",
        },
    )
    logger.info(
        "Join request answered",
        responder_id=connection.user_id,
        target_user_id=target_user_id,
        ride_id=ride_id,
        status=status,
        target_notified=notified,
    )


async def handle_leave_ride_channel(
    connection: Connection,
    data: dict[str, Any],
    registry: ConnectionRegistry,
    membership: ChannelMembershipTable,
) -> None:
    """Unsubscribe the sender from a ride channel without disconnecting."""
    ride_id = require_field(connection, data, "rideId", "leave_ride_channel", ErrorMessages.RIDE_ID_REQUIRED)

    was_member = membership.is_member(ride_id, connection.user_id)
    remaining = membership.leave(ride_id, connection.user_id)

    connection.send("channel_left", {"rideId": ride_id, "members": remaining})

    if was_member and remaining > 0:
        broadcast_to_channel(
            registry,
            membership,
            ride_id,
            "member_left",
            {"userId": connection.user_id, "timestamp": utc_now_z(), "members": remaining},
        )
    logger.info("User left ride channel", user_id=connection.user_id, ride_id=ride_id, members=remaining)
