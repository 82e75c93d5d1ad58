"""
Health monitoring models for Ride Channels.

Field names follow the JSON the mobile client already reads, so they are
camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness response with socket layer counters."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(default="ok", description="Always 'ok' while the process serves requests")
    message: str = Field(default="Server is running", description="Human readable status")
    socket_connections: int = Field(..., alias="socketConnections", description="Live authenticated sockets")
    active_ride_channels: int = Field(..., alias="activeRideChannels", description="Ride channels with members")


class RealtimeStatsResponse(BaseModel):
    """Diagnostic snapshot of the connection and channel tables."""

    connections: int = Field(..., description="Live authenticated sockets")
    channels: int = Field(..., description="Ride channels with members")
    channel_members: dict[str, int] = Field(default_factory=dict, description="Member count per ride channel")
    timestamp: str = Field(..., description="When the snapshot was taken")
