"""Client registry endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query, Request

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("")
async def list_clients(
    request: Request,
    group: str | None = Query(None, description="Group, default group if omitted"),
) -> list[dict]:
    """All clients currently connected to a group."""
    manager = request.app.state.manager
    return [c.to_dict() for c in manager.list_clients(group)]


@router.get("/{client_id}")
async def get_client(
    client_id: str,
    request: Request,
    group: str | None = Query(None),
) -> dict:
    manager = request.app.state.manager
    client = manager.get_client(client_id, group)
    if client is None:
        raise HTTPException(status_code=404, detail=f"Client '{client_id}' not found")
    return client.to_dict()


@router.put("/{client_id}/metadata")
async def set_metadata(
    client_id: str,
    request: Request,
    metadata: dict[str, Any] = Body(...),
    group: str | None = Query(None),
) -> dict:
    """Replace a client's metadata."""
    manager = request.app.state.manager
    client = manager.set_client_metadata(client_id, metadata, group)
    if client is None:
        raise HTTPException(status_code=404, detail=f"Client '{client_id}' not found")
    return client.to_dict()
