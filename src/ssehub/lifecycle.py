"""Connection lifecycle: handshake, keep-alive and disconnect cleanup."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Mapping

from starlette.requests import Request
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from ssehub.config import DEFAULT_KEEPALIVE_INTERVAL, DEFAULT_QUEUE_SIZE
from ssehub.connection import StreamConnection
from ssehub.encoder import INITIAL_FRAME, encode_comment
from ssehub.registry import ClientRecord, ClientRegistry

logger = logging.getLogger(__name__)

SSE_RESPONSE_HEADERS = {
    "Connection": "keep-alive",
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def merge_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Overlay the event-stream headers on *headers*, case-insensitively."""
    core = {k.lower() for k in SSE_RESPONSE_HEADERS}
    merged = {k: v for k, v in (headers or {}).items() if k.lower() not in core}
    merged.update(SSE_RESPONSE_HEADERS)
    return merged


class EventStreamResponse(StreamingResponse):
    """Streaming response that always runs *on_close* when it finishes.

    Covers the case where the client goes away before the body iterator
    has started, so its own cleanup never runs.
    """

    def __init__(
        self,
        content: AsyncIterator[str],
        headers: Mapping[str, str],
        on_close: Callable[[], None],
    ) -> None:
        super().__init__(content, status_code=200, headers=dict(headers))
        self._on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._on_close()


@dataclass
class SSESession:
    """Result of :meth:`ConnectionLifecycle.connect`.

    Return ``response`` from the route; keep ``connection`` to address
    this stream directly.
    """

    client: ClientRecord
    connection: StreamConnection
    response: EventStreamResponse
    _close: Callable[[], None]

    @property
    def client_id(self) -> str:
        return self.client.client_id

    def close(self) -> None:
        """Server-side close: ends the stream and unregisters it."""
        self._close()


class ConnectionLifecycle:
    """Turns inbound requests into registered, kept-alive event streams."""

    def __init__(
        self,
        registry: ClientRegistry,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.registry = registry
        self.keepalive_interval = keepalive_interval
        self.queue_size = queue_size

    def connect(
        self,
        request: Request,
        headers: Mapping[str, str] | None = None,
        metadata: dict[str, Any] | None = None,
        client_id: str | None = None,
        group: str | None = None,
        on_disconnect: Callable[[], None] | None = None,
    ) -> SSESession:
        """Register a new event stream for *request*.

        Args:
            request: Inbound request; polled for disconnects between
                keep-alives.
            headers: Extra response headers. The event-stream headers
                override any of the same name.
            metadata: Seeds a new client's metadata. Ignored when the
                client already exists.
            client_id: Joins an existing client when it matches; a fresh
                id is generated when omitted.
            group: Target group, default group when None.
            on_disconnect: Called once after the stream is unregistered.
        """
        group = self.registry.resolve_group(group)
        connection = StreamConnection(self.queue_size)
        response_headers = merge_headers(headers)

        client_id, record = self.registry.register(connection, group, client_id, metadata)
        close = self._make_closer(group, client_id, connection, on_disconnect)

        connection.write(INITIAL_FRAME)
        connection.open()

        response = EventStreamResponse(
            self._stream(request, connection, close),
            headers=response_headers,
            on_close=close,
        )
        logger.debug("Opened SSE connection %s for client %s", connection.connection_id, client_id)
        return SSESession(client=record, connection=connection, response=response, _close=close)

    def _make_closer(
        self,
        group: str,
        client_id: str,
        connection: StreamConnection,
        on_disconnect: Callable[[], None] | None,
    ) -> Callable[[], None]:
        done = False

        def close() -> None:
            nonlocal done
            if done:
                return
            done = True
            connection.close()
            self.registry.unregister_connection(group, client_id, connection)
            if on_disconnect is not None:
                try:
                    on_disconnect()
                except Exception:
                    logger.exception("SSE disconnect callback failed for client %s", client_id)

        return close

    async def _stream(
        self,
        request: Request,
        connection: StreamConnection,
        close: Callable[[], None],
    ) -> AsyncIterator[str]:
        try:
            while True:
                try:
                    chunk = await connection.next_chunk(timeout=self.keepalive_interval)
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    chunk = encode_comment()
                if chunk is None:
                    break
                yield chunk
        finally:
            close()
