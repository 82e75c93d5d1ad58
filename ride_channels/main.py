"""
Ride Channels Server - Main Application Entry Point

Builds the FastAPI application at import time so it can be served with
`uvicorn ride_channels.main:app`, and provides the `ride-channels` console
script.
"""

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger

app = create_app()

logger = get_logger(__name__)


def main() -> None:
    """Run the server with host and port from configuration."""
    import uvicorn

    config = get_config()
    logger.info("Starting uvicorn", host=config.server.host, port=config.server.port)
    uvicorn.run(
        "ride_channels.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
        access_log=True,
        use_colors=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
