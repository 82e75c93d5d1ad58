"""
Test configuration and fixtures for the Ride Channels test suite.

Environment variables are set before any application module is imported so
that configuration loads without a real .env file.
"""

import os
import time
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("RIDECHANNELS_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_FORMAT", "human")

from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from ride_channels.app.factory import create_app  # noqa: E402
from ride_channels.config import reset_config  # noqa: E402
from ride_channels.config.models import AppConfig  # noqa: E402
from ride_channels.container import RealtimeContainer  # noqa: E402
from ride_channels.realtime.connection_models import Connection  # noqa: E402

TEST_JWT_SECRET = os.environ["RIDECHANNELS_JWT_SECRET"]


@pytest.fixture(autouse=True)
def reset_config_between_tests() -> Generator[None, None, None]:
    """Ensure no configuration leaks between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config() -> AppConfig:
    """Application configuration loaded from the test environment."""
    return AppConfig()


@pytest.fixture
def container(app_config: AppConfig) -> RealtimeContainer:
    """A fresh realtime container with empty tables."""
    return RealtimeContainer(app_config)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for signed connection credentials."""

    def _make_token(
        user_id: str | None = "rider-1",
        name: str | None = None,
        secret: str = TEST_JWT_SECRET,
        expires_in: int = 3600,
        **claims: Any,
    ) -> str:
        payload: dict[str, Any] = {"exp": int(time.time()) + expires_in, **claims}
        if user_id is not None:
            payload["userId"] = user_id
        if name is not None:
            payload["name"] = name
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def make_connection() -> Callable[..., Connection]:
    """Factory for connections backed by a mock socket."""

    def _make_connection(user_id: str, display_name: str | None = None) -> Connection:
        return Connection(
            user_id=user_id,
            display_name=display_name or f"User {user_id}",
            websocket=AsyncMock(),
        )

    return _make_connection


@pytest.fixture
def drain_outbox() -> Callable[[Connection], list[Any]]:
    """Return a function that empties a connection's outbox into a list."""

    def _drain(connection: Connection) -> list[Any]:
        items = []
        while not connection.outbox.empty():
            items.append(connection.outbox.get_nowait())
        return items

    return _drain


@pytest.fixture
def app(app_config: AppConfig):
    """FastAPI application built from the test configuration."""
    return create_app(app_config)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """
    Test client running the app lifespan.

    Used as a context manager so every WebSocket session shares one event loop.
    """
    with TestClient(app) as test_client:
        yield test_client
