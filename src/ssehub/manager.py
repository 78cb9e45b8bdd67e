"""High-level SSE manager: one registry plus its dispatcher and lifecycle."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from starlette.requests import Request

from ssehub.config import Config
from ssehub.connection import Connection
from ssehub.dispatcher import DeliveryReport, Dispatcher, Encoder
from ssehub.encoder import encode_event
from ssehub.lifecycle import ConnectionLifecycle, SSESession
from ssehub.registry import ClientRecord, ClientRegistry, generate_client_id

logger = logging.getLogger(__name__)


class SSEManager:
    """Owns the client registry and exposes the push operations.

    Build one per application and share it (e.g. on ``app.state``); tests
    build their own for isolation.
    """

    def __init__(
        self,
        config: Config | None = None,
        id_factory: Callable[[], str] = generate_client_id,
        encoder: Encoder = encode_event,
    ) -> None:
        self.config = config or Config()
        self.registry = ClientRegistry(
            default_group=self.config.default_group,
            id_factory=id_factory,
        )
        self.dispatcher = Dispatcher(self.registry, encoder=encoder)
        self.lifecycle = ConnectionLifecycle(
            self.registry,
            keepalive_interval=self.config.keepalive_interval,
            queue_size=self.config.queue_size,
        )

    # -- connections --

    def connect(
        self,
        request: Request,
        headers: Mapping[str, str] | None = None,
        metadata: dict[str, Any] | None = None,
        client_id: str | None = None,
        group: str | None = None,
        on_disconnect: Callable[[], None] | None = None,
    ) -> SSESession:
        """Open an event stream for *request*. See :meth:`ConnectionLifecycle.connect`."""
        return self.lifecycle.connect(
            request,
            headers=headers,
            metadata=metadata,
            client_id=client_id,
            group=group,
            on_disconnect=on_disconnect,
        )

    # -- sending --

    def send_to_connection(
        self,
        connection: Connection,
        payload: Any,
        event_type: str | None = None,
        event_id: int | None = None,
    ) -> bool:
        return self.dispatcher.send_to_connection(connection, payload, event_type, event_id)

    def send_to_client(
        self,
        client_id: str,
        payload: Any,
        event_type: str | None = None,
        group: str | None = None,
        event_id: int | None = None,
    ) -> DeliveryReport:
        return self.dispatcher.send_to_client(client_id, payload, event_type, group, event_id)

    def send_to_group(
        self,
        payload: Any,
        event_type: str | None = None,
        group: str | None = None,
        event_id: int | None = None,
    ) -> DeliveryReport:
        return self.dispatcher.send_to_group(payload, event_type, group, event_id)

    # -- clients --

    def get_client(self, client_id: str, group: str | None = None) -> ClientRecord | None:
        return self.registry.lookup(group, client_id)

    def list_clients(self, group: str | None = None) -> list[ClientRecord]:
        return self.registry.list_all(group)

    def set_client_metadata(
        self,
        client_id: str,
        metadata: dict[str, Any],
        group: str | None = None,
    ) -> ClientRecord | None:
        """Replace (not merge) a client's metadata. None if unknown."""
        return self.registry.set_metadata(group, client_id, metadata)

    def groups(self) -> list[str]:
        return self.registry.groups()

    def stats(self) -> dict:
        """Client and connection counts per group."""
        return {
            group: {
                "clients": self.registry.client_count(group),
                "connections": self.registry.connection_count(group),
            }
            for group in self.registry.groups()
        }

