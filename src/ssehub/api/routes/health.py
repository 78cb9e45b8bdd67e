"""Health and status endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request) -> dict:
    """Hub status: per-group client and connection counts."""
    manager = request.app.state.manager
    stats = manager.stats()
    return {
        "status": "ok",
        "groups": stats,
        "clients": sum(g["clients"] for g in stats.values()),
        "connections": sum(g["connections"] for g in stats.values()),
    }
