"""
Monitoring API endpoints for Ride Channels.
"""

from fastapi import APIRouter, Request

from ..models.health import HealthResponse

monitoring_router = APIRouter(prefix="/api", tags=["monitoring"])


@monitoring_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness check reporting live sockets and active ride channels."""
    container = request.app.state.container
    return HealthResponse(
        socket_connections=container.connection_registry.size(),
        active_ride_channels=container.channel_membership.channel_count(),
    )
