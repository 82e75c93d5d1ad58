"""Application lifecycle management for the Ride Channels server."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("ride_channels.lifespan")

__all__ = ["lifespan"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The container is built by the app factory; on shutdown every live socket
    is asked to close with a going-away code.
    """
    container = app.state.container
    logger.info(
        "Starting Ride Channels server",
        host=container.config.server.host,
        port=container.config.server.port,
    )

    yield

    logger.info("Shutting down Ride Channels server")
    container.close_all_connections()
