"""FastAPI application factory and server startup."""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI

from ssehub.manager import SSEManager

logger = logging.getLogger(__name__)


def create_api(manager: SSEManager) -> FastAPI:
    """Create the FastAPI app serving streams from *manager*."""
    app = FastAPI(
        title="ssehub",
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )

    # Shared by every route
    app.state.manager = manager

    from ssehub.api.routes import clients, events, health

    app.include_router(health.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(clients.router, prefix="/api")

    return app


async def start_api_server(app: FastAPI, host: str = "127.0.0.1", port: int = 8430) -> asyncio.Task:
    """Start uvicorn as a background asyncio task."""
    import uvicorn

    cfg = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=False,
    )
    server = uvicorn.Server(cfg)

    async def _run_server() -> None:
        try:
            await server.serve()
        except Exception:
            logger.error("SSE server crashed", exc_info=True)

    task = asyncio.create_task(_run_server(), name="ssehub-api")

    # Wait briefly to ensure the server actually binds
    await asyncio.sleep(0.5)
    if task.done() and task.exception():
        raise task.exception()
    return task
