"""
Real-time communication API endpoints for Ride Channels.

This module handles the WebSocket endpoint the mobile client connects to and
a small diagnostics route over the same shared state.
"""

from fastapi import APIRouter, Request, WebSocket

from ..auth.token_validation import authenticate_token, extract_bearer_token
from ..exceptions import AuthenticationError, ErrorContext
from ..models.health import RealtimeStatsResponse
from ..realtime.connection_models import CLOSE_POLICY_VIOLATION
from ..realtime.envelope import utc_now_z
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


def _select_subprotocol(websocket: WebSocket) -> str | None:
    """Pick the subprotocol to echo back; browsers drop the socket if an offered one is ignored."""
    offered = [p for p in websocket.scope.get("subprotocols", []) if p]
    if not offered:
        return None
    for protocol in offered:
        if protocol.lower() == "bearer":
            return protocol
    return offered[0]


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for ride channel events.

    The handshake must carry a bearer token (subprotocol, Authorization header
    or `token` query parameter). Optional `screen`, `rideId` and `deviceId`
    query parameters are logged for diagnostics only.
    """
    container = websocket.app.state.container
    config = container.config

    metadata = {
        "screen": websocket.query_params.get("screen"),
        "ride_id": websocket.query_params.get("rideId"),
        "device_id": websocket.query_params.get("deviceId"),
    }
    context = ErrorContext(event="connect", metadata={k: v for k, v in metadata.items() if v})

    token = extract_bearer_token(websocket.headers, websocket.query_params)
    try:
        identity = authenticate_token(
            token,
            config.security,
            default_display_name=config.realtime.default_display_name,
            context=context,
        )
    except AuthenticationError as e:
        await websocket.close(code=CLOSE_POLICY_VIOLATION, reason=e.reason.value)
        return

    logger.info("WebSocket connection attempt", user_id=identity.user_id, **context.metadata)

    try:
        await handle_websocket_connection(
            websocket,
            identity,
            container,
            subprotocol=_select_subprotocol(websocket),
            metadata=metadata,
        )
    except Exception as e:
        logger.error("Error in WebSocket endpoint", user_id=identity.user_id, error=str(e), exc_info=True)
        raise


@realtime_router.get("/api/realtime/stats", response_model=RealtimeStatsResponse)
async def get_realtime_stats(request: Request) -> RealtimeStatsResponse:
    """Connection count, channel count and per-channel membership sizes."""
    stats = request.app.state.container.get_stats()
    return RealtimeStatsResponse(**stats, timestamp=utc_now_z())
