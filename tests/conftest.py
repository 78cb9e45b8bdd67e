"""Shared test fixtures."""

from __future__ import annotations

import itertools

import pytest
from starlette.requests import Request

from ssehub.config import Config
from ssehub.connection import ConnectionClosedError
from ssehub.manager import SSEManager
from ssehub.registry import ClientRegistry

_fake_ids = itertools.count(1)


class FakeConnection:
    """Connection double that records writes, optionally failing them."""

    def __init__(self, fail: bool = False) -> None:
        self.connection_id = f"fake-{next(_fake_ids)}"
        self.written: list[str] = []
        self.fail = fail
        self.closed = False

    def write(self, chunk: str) -> None:
        if self.fail:
            raise ConnectionClosedError(self.connection_id, "broken pipe")
        self.written.append(chunk)

    def close(self) -> None:
        self.closed = True


def make_request(receive=None) -> Request:
    """A bare GET request for the lifecycle manager."""

    async def _receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    scope = {
        "type": "http",
        "method": "GET",
        "path": "/events",
        "headers": [],
        "query_string": b"",
    }
    return Request(scope, receive or _receive)


@pytest.fixture
def registry() -> ClientRegistry:
    """Provide a fresh registry with predictable client ids."""
    ids = itertools.count(1)
    return ClientRegistry(id_factory=lambda: f"client-{next(ids)}")


@pytest.fixture
def manager() -> SSEManager:
    """Provide an isolated manager with a short keep-alive."""
    return SSEManager(Config(keepalive_interval=0.05, queue_size=8))


@pytest.fixture
def conn():
    """Factory for fake connections."""
    return FakeConnection
