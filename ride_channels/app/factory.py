"""
FastAPI application factory for the Ride Channels server.

This module handles FastAPI app creation, middleware configuration,
and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..api.monitoring import monitoring_router
from ..api.real_time import realtime_router
from ..config import get_config
from ..config.models import AppConfig
from ..container import RealtimeContainer
from ..structured_logging.enhanced_logging_config import get_logger, setup_logging
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration; loaded from the environment when omitted

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    if config is None:
        config = get_config()

    setup_logging(config.logging.to_dict())

    app = FastAPI(
        title="Ride Channels API",
        description="Real-time ride channel and join request messaging for the ride-sharing app",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = RealtimeContainer(config)

    allow_origins = list(config.cors.allow_origins)
    allow_methods = [str(m).upper() for m in config.cors.allow_methods]
    logger.info("CORS configuration", allow_origins=allow_origins, allow_methods=allow_methods)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=allow_methods,
        allow_headers=["*"],
    )

    app.include_router(monitoring_router)
    app.include_router(realtime_router)

    return app
