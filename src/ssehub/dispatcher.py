"""Fan-out of encoded events to connections, clients and groups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from ssehub.connection import Connection, ConnectionWriteError
from ssehub.encoder import encode_event
from ssehub.registry import ClientRegistry

logger = logging.getLogger(__name__)

Encoder = Callable[..., str]


@dataclass
class DeliveryFailure:
    client_id: str | None
    connection_id: str
    error: str


@dataclass
class DeliveryReport:
    """Outcome of one send call.

    Sends never raise for a failed recipient; callers that care look here.
    """

    delivered: int = 0
    failed: list[DeliveryFailure] = field(default_factory=list)
    client_found: bool = True

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "delivered": self.delivered,
            "failed": [
                {
                    "client_id": f.client_id,
                    "connection_id": f.connection_id,
                    "error": f.error,
                }
                for f in self.failed
            ],
            "client_found": self.client_found,
        }


class Dispatcher:
    """Sends events through a :class:`ClientRegistry`.

    Every send encodes exactly once, however many connections receive it.
    """

    def __init__(self, registry: ClientRegistry, encoder: Encoder = encode_event) -> None:
        self.registry = registry
        self._encode = encoder

    def _write(
        self,
        connection: Connection,
        event: str,
        report: DeliveryReport,
        client_id: str | None = None,
    ) -> bool:
        try:
            connection.write(event)
        except (ConnectionWriteError, OSError) as exc:
            logger.warning("Write SSE to client %s failed: %s", client_id, exc)
            reason = exc.reason if isinstance(exc, ConnectionWriteError) else str(exc)
            report.failed.append(
                DeliveryFailure(client_id, connection.connection_id, reason)
            )
            return False
        report.delivered += 1
        return True

    def _write_all(
        self,
        client_id: str,
        connections: Iterable[Connection],
        event: str,
        report: DeliveryReport,
    ) -> None:
        for connection in connections:
            self._write(connection, event, report, client_id)

    def send_to_connection(
        self,
        connection: Connection,
        payload: Any,
        event_type: str | None = None,
        event_id: int | None = None,
    ) -> bool:
        """Send to one connection. Returns False if the write failed."""
        event = self._encode(payload, event_type, event_id)
        return self._write(connection, event, DeliveryReport())

    def send_to_client(
        self,
        client_id: str,
        payload: Any,
        event_type: str | None = None,
        group: str | None = None,
        event_id: int | None = None,
    ) -> DeliveryReport:
        """Send to every connection of one client."""
        connections = self.registry.connections_for(group, client_id)
        if connections is None:
            logger.debug("No client with id %s, nothing sent", client_id)
            return DeliveryReport(client_found=False)
        report = DeliveryReport()
        event = self._encode(payload, event_type, event_id)
        self._write_all(client_id, connections, event, report)
        return report

    def send_to_group(
        self,
        payload: Any,
        event_type: str | None = None,
        group: str | None = None,
        event_id: int | None = None,
    ) -> DeliveryReport:
        """Broadcast to every client in *group*.

        A failing client is logged and skipped; the rest still receive.
        """
        report = DeliveryReport()
        snapshot = self.registry.group_snapshot(group)
        if not snapshot:
            return report
        event = self._encode(payload, event_type, event_id)
        for client_id, connections in snapshot:
            self._write_all(client_id, connections, event, report)
        if report.failed:
            logger.warning(
                "Broadcast to group %s: %d delivered, %d failed",
                self.registry.resolve_group(group),
                report.delivered,
                len(report.failed),
            )
        return report
