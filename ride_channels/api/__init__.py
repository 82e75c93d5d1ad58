"""
API module for Ride Channels.

This module provides the WebSocket endpoint and the REST monitoring routes.
"""

from .monitoring import monitoring_router
from .real_time import realtime_router

__all__ = ["monitoring_router", "realtime_router"]
