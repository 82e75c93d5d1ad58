"""
WebSocket connection lifecycle for Ride Channels.

Each authenticated socket gets two tasks: the endpoint task, which reads and
routes frames, and a writer task, which drains the connection's outbox.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, WebSocketDisconnect

from ..auth.token_validation import AuthenticatedIdentity
from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..structured_logging.enhanced_logging_config import bind_request_context, clear_request_context, get_logger
from .connection_models import CLOSE_SUPERSEDED, CloseRequest, Connection
from .message_validator import MessageValidationError
from .presence import handle_disconnect

if TYPE_CHECKING:
    from ..container import RealtimeContainer

logger = get_logger(__name__)


def _is_not_connected_error(error: Exception) -> bool:
    error_message = str(error)
    return "WebSocket is not connected" in error_message or 'Need to call "accept" first' in error_message


async def _drain_outbox(connection: Connection) -> None:
    """Write queued frames to the socket until it closes or a close is requested."""
    websocket = connection.websocket
    while True:
        item = await connection.outbox.get()
        try:
            if isinstance(item, CloseRequest):
                await websocket.close(code=item.code, reason=item.reason)
                logger.info(
                    "WebSocket closed by server",
                    user_id=connection.user_id,
                    connection_id=connection.connection_id,
                    code=item.code,
                    reason=item.reason,
                )
                return
            await websocket.send_json(item)
        except Exception as e:
            # The reader notices the dead socket on its own and runs cleanup
            logger.warning(
                "Outbound delivery failed, stopping writer",
                user_id=connection.user_id,
                connection_id=connection.connection_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            connection.closing = True
            return


async def _handle_websocket_message_loop(connection: Connection, container: RealtimeContainer) -> None:
    """Read, validate and route frames until the socket goes away."""
    websocket = connection.websocket
    validator = container.message_validator
    router = container.message_router

    while True:
        try:
            data = await websocket.receive_text()

            try:
                message = validator.parse_and_validate(data, connection.user_id)
            except MessageValidationError as e:
                logger.warning(
                    "Message validation failed",
                    user_id=connection.user_id,
                    error_type=e.error_type.value,
                    error_message=e.message,
                )
                connection.send(
                    "error",
                    create_websocket_error_response(e.error_type, f"{ErrorMessages.INVALID_FORMAT}: {e.message}"),
                )
                continue

            await router.handle_message(connection, message)

        except WebSocketDisconnect as e:
            logger.info(
                "WebSocket disconnected",
                user_id=connection.user_id,
                connection_id=connection.connection_id,
                code=e.code,
            )
            break

        except RuntimeError as e:
            if _is_not_connected_error(e):
                logger.info(
                    "WebSocket connection lost (not connected)",
                    user_id=connection.user_id,
                    connection_id=connection.connection_id,
                    error=str(e),
                )
                break
            raise

        except Exception as e:
            logger.error(
                "Error handling WebSocket message",
                user_id=connection.user_id,
                connection_id=connection.connection_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            connection.send(
                "error",
                create_websocket_error_response(
                    ErrorType.MESSAGE_PROCESSING_ERROR,
                    ErrorMessages.MESSAGE_PROCESSING_ERROR,
                ),
            )


async def handle_websocket_connection(
    websocket: WebSocket,
    identity: AuthenticatedIdentity,
    container: RealtimeContainer,
    subprotocol: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """
    Run an authenticated socket from accept to cleanup.

    The connection is registered before the handshake is accepted, so a client
    that sees the handshake complete is already reachable by other users.

    Args:
        websocket: The WebSocket, not yet accepted
        identity: The user the handshake credential belongs to
        container: Shared realtime state
        subprotocol: Subprotocol to echo back on accept, if the client offered one
        metadata: Client-supplied diagnostics (screen, ride_id, device_id)
    """
    metadata = {k: v for k, v in (metadata or {}).items() if v}
    connection = Connection(
        user_id=identity.user_id,
        display_name=identity.display_name,
        websocket=websocket,
        metadata=metadata,
    )
    bind_request_context(user_id=connection.user_id, connection_id=connection.connection_id, **metadata)

    registry = container.connection_registry
    membership = container.channel_membership
    writer: asyncio.Task | None = None

    superseded = registry.register(connection)
    try:
        if superseded is not None and container.config.realtime.evict_superseded_connections:
            superseded.request_close(CLOSE_SUPERSEDED, "superseded")

        await websocket.accept(subprotocol=subprotocol)
        logger.info(
            "WebSocket connected",
            user_id=connection.user_id,
            connection_id=connection.connection_id,
            connections=registry.size(),
        )

        writer = asyncio.create_task(_drain_outbox(connection), name=f"outbox-{connection.connection_id}")
        await _handle_websocket_message_loop(connection, container)
    finally:
        if writer is not None:
            writer.cancel()
            with suppress(asyncio.CancelledError):
                await writer
        handle_disconnect(connection, registry, membership)
        clear_request_context()
