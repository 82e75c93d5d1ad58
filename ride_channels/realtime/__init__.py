"""
Real-time ride channel layer.

Connection registry, ride channel membership, event routing and presence
cleanup for authenticated WebSocket clients.
"""
