"""
Ride Channels - real-time matchmaking and ride-channel coordination server.

Authenticated WebSocket clients subscribe to ride channels, exchange join
requests and accept/reject decisions, and receive presence notices when
other members leave.
"""

__version__ = "0.1.0"
