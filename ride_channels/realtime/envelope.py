"""
Event envelope utilities for ride channel messages.

Every frame on the wire, in either direction, is a JSON object of the form
{"type": <event name>, "data": {...}}.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with millisecond precision and 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_millis() -> int:
    """Return the current wall clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def build_event(event_type: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create an outbound event envelope.

    Args:
        event_type: Name of the event (e.g. "channel_joined")
        data: Event payload

    Returns:
        The frame to serialize and send
    """
    return {"type": event_type, "data": data or {}}
