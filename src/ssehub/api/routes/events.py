"""Event stream and publish endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ssehub.encoder import EventSerializationError

router = APIRouter(prefix="/events", tags=["events"])


class PublishRequest(BaseModel):
    data: Any
    event: str | None = None
    id: int | None = None
    group: str | None = None
    client_id: str | None = None


@router.get("/stream")
async def stream(
    request: Request,
    client_id: str | None = Query(None, description="Join an existing client"),
    group: str | None = Query(None, description="Group, default group if omitted"),
):
    """Open an event stream. Sends a keep-alive comment while idle."""
    manager = request.app.state.manager
    session = manager.connect(request, client_id=client_id, group=group)
    return session.response


@router.post("/publish")
async def publish(body: PublishRequest, request: Request) -> dict:
    """Send to one client when ``client_id`` is set, else to the whole group."""
    manager = request.app.state.manager
    try:
        if body.client_id is not None:
            report = manager.send_to_client(
                body.client_id, body.data, body.event, body.group, body.id
            )
        else:
            report = manager.send_to_group(body.data, body.event, body.group, body.id)
    except EventSerializationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return report.to_dict()
