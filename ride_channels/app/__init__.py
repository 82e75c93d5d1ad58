"""
Application assembly for Ride Channels: app factory and lifespan.
"""
