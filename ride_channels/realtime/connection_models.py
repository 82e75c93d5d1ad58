"""
Connection data models for ride channel sockets.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .envelope import build_event


@dataclass(frozen=True)
class CloseRequest:
    """Mailbox item asking the writer task to close the socket."""

    code: int
    reason: str


# Close codes sent by the server
CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008
CLOSE_SUPERSEDED = 4000


@dataclass
class Connection:
    """
    One authenticated socket belonging to one user.

    Outbound frames are never written to the socket directly by handlers;
    they are queued on `outbox` and drained by the connection's writer task,
    so table mutations never wait on network I/O.
    """

    user_id: str
    display_name: str
    websocket: Any
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    connected_at: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue, repr=False)
    closing: bool = False

    def send(self, event_type: str, data: dict[str, Any] | None = None) -> bool:
        """
        Queue an event for delivery to this connection.

        Returns:
            bool: False if the connection is already closing and the event was dropped
        """
        if self.closing:
            return False
        self.outbox.put_nowait(build_event(event_type, data))
        return True

    def request_close(self, code: int, reason: str) -> None:
        """Ask the writer task to close the socket after flushing queued events."""
        if self.closing:
            return
        self.closing = True
        self.outbox.put_nowait(CloseRequest(code=code, reason=reason))
