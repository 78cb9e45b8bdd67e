"""Entry point for the ssehub server."""

import argparse
import asyncio
import logging
import sys

from ssehub.api.app import create_api, start_api_server
from ssehub.config import Config
from ssehub.manager import SSEManager


async def _serve(config: Config) -> None:
    manager = SSEManager(config)
    app = create_api(manager)
    task = await start_api_server(app, host=config.host, port=config.port)
    await task


def main():
    """Parse arguments and serve event streams until interrupted."""
    parser = argparse.ArgumentParser(
        description="ssehub — Server-Sent Events broadcast server",
    )
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Bind port")
    parser.add_argument(
        "--keepalive",
        type=float,
        help="Seconds between keep-alive comments",
    )
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logger = logging.getLogger(__name__)

    config = Config.from_args(
        host=args.host,
        port=args.port,
        keepalive_interval=args.keepalive,
    )

    errors = config.validate()
    if errors:
        for err in errors:
            logger.error(err)
        sys.exit(1)

    logger.info("Serving SSE on http://%s:%d/api/events/stream", config.host, config.port)
    logger.info("Keep-alive interval: %ss", config.keepalive_interval)
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Stopped.")


if __name__ == "__main__":
    main()
