"""Connection handles: one outbound event stream each."""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging
from typing import Protocol, runtime_checkable

from ssehub.config import DEFAULT_QUEUE_SIZE

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


class ConnectionWriteError(Exception):
    """A record could not be handed to a connection."""

    def __init__(self, connection_id: str, reason: str) -> None:
        super().__init__(f"Connection {connection_id}: {reason}")
        self.connection_id = connection_id
        self.reason = reason


class ConnectionClosedError(ConnectionWriteError):
    """The peer is gone or the stream has been closed."""


class SlowConsumerError(ConnectionWriteError):
    """The connection's outbound buffer is full."""


class ConnectionState(enum.Enum):
    HANDSHAKING = "handshaking"
    OPEN = "open"
    CLOSED = "closed"


@runtime_checkable
class Connection(Protocol):
    """What the registry and dispatcher need from a connection."""

    @property
    def connection_id(self) -> str: ...

    @property
    def closed(self) -> bool: ...

    def write(self, chunk: str) -> None:
        """Queue one complete record. Raises ConnectionWriteError."""

    def close(self) -> None: ...


class StreamConnection:
    """Buffered connection drained by a streaming HTTP response.

    ``write`` never blocks: each record goes onto a bounded queue as a
    single item, so records from concurrent senders never interleave and
    arrive in send order. The response body pulls from :meth:`next_chunk`.
    Must be written to from the event-loop thread.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.connection_id = f"conn-{next(_ids)}"
        self.state = ConnectionState.HANDSHAKING
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=queue_size)

    def __repr__(self) -> str:
        return f"<StreamConnection {self.connection_id} {self.state.value}>"

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def pending(self) -> int:
        """Records queued but not yet sent."""
        return self._queue.qsize()

    def open(self) -> None:
        """Mark the handshake as finished."""
        if self.state is ConnectionState.HANDSHAKING:
            self.state = ConnectionState.OPEN

    def write(self, chunk: str) -> None:
        if self.closed:
            raise ConnectionClosedError(self.connection_id, "connection closed")
        try:
            self._queue.put_nowait(chunk)
        except asyncio.QueueFull:
            raise SlowConsumerError(
                self.connection_id, f"{self._queue.maxsize} records pending"
            ) from None

    def close(self) -> None:
        """Close the stream; further writes fail. Idempotent."""
        if self.closed:
            return
        self.state = ConnectionState.CLOSED
        # Wake a reader blocked in next_chunk()
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass
        logger.debug("Connection %s closed", self.connection_id)

    async def next_chunk(self, timeout: float | None = None) -> str | None:
        """Wait for the next record.

        Returns None once the connection is closed. Raises
        ``asyncio.TimeoutError`` if nothing arrives within *timeout*.
        """
        if self.closed:
            return None
        if timeout is None:
            chunk = await self._queue.get()
        else:
            chunk = await asyncio.wait_for(self._queue.get(), timeout)
        if chunk is None or self.closed:
            return None
        return chunk
