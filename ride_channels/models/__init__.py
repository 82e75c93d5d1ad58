"""
Response models for Ride Channels.
"""

from .health import HealthResponse, RealtimeStatsResponse

__all__ = ["HealthResponse", "RealtimeStatsResponse"]
