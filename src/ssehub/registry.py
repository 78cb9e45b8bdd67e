"""Client registry: group -> client id -> live connections."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from ssehub.config import DEFAULT_GROUP
from ssehub.connection import Connection

logger = logging.getLogger(__name__)


def generate_client_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ClientRecord:
    """Read-only view of one client at the moment it was taken."""

    client_id: str
    group: str
    metadata: dict[str, Any]
    connections: tuple[Connection, ...]

    @property
    def connection_count(self) -> int:
        return len(self.connections)

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "group": self.group,
            "metadata": self.metadata,
            "connections": [c.connection_id for c in self.connections],
        }


@dataclass
class _ClientEntry:
    client_id: str
    metadata: dict[str, Any]
    connections: list[Connection] = field(default_factory=list)

    def snapshot(self, group: str) -> ClientRecord:
        return ClientRecord(
            client_id=self.client_id,
            group=group,
            metadata=dict(self.metadata),
            connections=tuple(self.connections),
        )


class ClientRegistry:
    """Tracks which connections belong to which client in which group.

    All reads and writes go through one lock. Callers only ever get
    :class:`ClientRecord` snapshots or tuples of connections, never the
    internal lists, so dispatch can iterate them while the registry keeps
    changing.

    Args:
        default_group: Group used whenever ``group`` is ``None``.
        id_factory: Produces client ids when none is supplied.
    """

    def __init__(
        self,
        default_group: str = DEFAULT_GROUP,
        id_factory: Callable[[], str] = generate_client_id,
    ) -> None:
        self.default_group = default_group
        self._id_factory = id_factory
        self._groups: dict[str, dict[str, _ClientEntry]] = {default_group: {}}
        self._lock = threading.Lock()

    def resolve_group(self, group: str | None) -> str:
        """Map the ``None`` sentinel to the default group."""
        return self.default_group if group is None else group

    def register(
        self,
        connection: Connection,
        group: str | None = None,
        client_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[str, ClientRecord]:
        """Attach *connection* to a client, creating the client if needed.

        An existing client keeps its metadata; *metadata* only seeds new
        clients. Returns the resolved client id and a snapshot.
        """
        group = self.resolve_group(group)
        client_id = client_id or self._id_factory()
        with self._lock:
            clients = self._groups.setdefault(group, {})
            entry = clients.get(client_id)
            if entry is None:
                entry = _ClientEntry(client_id=client_id, metadata=dict(metadata or {}))
                clients[client_id] = entry
                logger.info("New SSE client %s in group %s", client_id, group)
            else:
                logger.info("New SSE connection for client %s in group %s", client_id, group)
            if not any(c is connection for c in entry.connections):
                entry.connections.append(connection)
            return client_id, entry.snapshot(group)

    def unregister_connection(
        self,
        group: str | None,
        client_id: str,
        connection: Connection,
    ) -> bool:
        """Detach *connection*; drop the client when it was the last one.

        Returns False when there was nothing to remove.
        """
        group = self.resolve_group(group)
        with self._lock:
            clients = self._groups.get(group, {})
            entry = clients.get(client_id)
            if entry is None:
                return False
            remaining = [c for c in entry.connections if c is not connection]
            if len(remaining) == len(entry.connections):
                return False
            entry.connections = remaining
            if not remaining:
                del clients[client_id]
                logger.info(
                    "Client %s disconnected and removed from group %s", client_id, group
                )
            return True

    def lookup(self, group: str | None, client_id: str) -> ClientRecord | None:
        group = self.resolve_group(group)
        with self._lock:
            entry = self._groups.get(group, {}).get(client_id)
            if entry is None:
                logger.debug("No client with id %s in group %s", client_id, group)
                return None
            return entry.snapshot(group)

    def list_all(self, group: str | None = None) -> list[ClientRecord]:
        group = self.resolve_group(group)
        with self._lock:
            return [e.snapshot(group) for e in self._groups.get(group, {}).values()]

    def set_metadata(
        self,
        group: str | None,
        client_id: str,
        metadata: dict[str, Any],
    ) -> ClientRecord | None:
        """Replace a client's metadata wholesale."""
        group = self.resolve_group(group)
        with self._lock:
            entry = self._groups.get(group, {}).get(client_id)
            if entry is None:
                logger.debug("No client with id %s in group %s", client_id, group)
                return None
            entry.metadata = dict(metadata)
            return entry.snapshot(group)

    def connections_for(self, group: str | None, client_id: str) -> tuple[Connection, ...] | None:
        """Current connections of one client, or None if it is unknown."""
        group = self.resolve_group(group)
        with self._lock:
            entry = self._groups.get(group, {}).get(client_id)
            if entry is None:
                return None
            return tuple(entry.connections)

    def group_snapshot(self, group: str | None = None) -> list[tuple[str, tuple[Connection, ...]]]:
        """(client id, connections) pairs for every client in *group*."""
        group = self.resolve_group(group)
        with self._lock:
            return [
                (client_id, tuple(entry.connections))
                for client_id, entry in self._groups.get(group, {}).items()
            ]

    def groups(self) -> list[str]:
        with self._lock:
            return list(self._groups)

    def client_count(self, group: str | None = None) -> int:
        group = self.resolve_group(group)
        with self._lock:
            return len(self._groups.get(group, {}))

    def connection_count(self, group: str | None = None) -> int:
        group = self.resolve_group(group)
        with self._lock:
            return sum(len(e.connections) for e in self._groups.get(group, {}).values())
