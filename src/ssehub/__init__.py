"""ssehub — Server-Sent Events broadcast manager.

Library API::

    from fastapi import FastAPI, Request
    from ssehub import SSEManager

    app = FastAPI()
    sse = SSEManager()

    @app.get("/events")
    async def events(request: Request):
        return sse.connect(request, client_id=request.query_params.get("id")).response

    # elsewhere
    sse.send_to_client("alice", {"unread": 3}, "inbox")
    sse.send_to_group("maintenance at 18:00", "notice")
"""

from __future__ import annotations

from ssehub.config import Config
from ssehub.dispatcher import DeliveryReport
from ssehub.encoder import EventSerializationError, encode_event
from ssehub.manager import SSEManager
from ssehub.registry import ClientRecord

__all__ = [
    "ClientRecord",
    "Config",
    "DeliveryReport",
    "EventSerializationError",
    "SSEManager",
    "encode_event",
]
