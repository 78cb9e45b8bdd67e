"""Configuration loaded from .env, env vars, or programmatic input."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_KEEPALIVE_INTERVAL = 20.0
DEFAULT_QUEUE_SIZE = 256
DEFAULT_GROUP = "default"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8430


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Config:
    """SSE hub configuration. Can be built from env, CLI args, or directly."""

    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL
    queue_size: int = DEFAULT_QUEUE_SIZE
    default_group: str = DEFAULT_GROUP
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls) -> Config:
        """Load config from environment variables and .env file."""
        load_dotenv()
        return cls(
            keepalive_interval=_env_float("SSE_KEEPALIVE_INTERVAL", DEFAULT_KEEPALIVE_INTERVAL),
            queue_size=_env_int("SSE_QUEUE_SIZE", DEFAULT_QUEUE_SIZE),
            default_group=os.getenv("SSE_DEFAULT_GROUP", "") or DEFAULT_GROUP,
            host=os.getenv("SSE_HOST", "") or DEFAULT_HOST,
            port=_env_int("SSE_PORT", DEFAULT_PORT),
        )

    @classmethod
    def from_args(
        cls,
        host: str | None = None,
        port: int | None = None,
        keepalive_interval: float | None = None,
    ) -> Config:
        """Build config from explicit arguments, falling back to env."""
        env = cls.from_env()
        return cls(
            keepalive_interval=(
                keepalive_interval if keepalive_interval is not None else env.keepalive_interval
            ),
            queue_size=env.queue_size,
            default_group=env.default_group,
            host=host or env.host,
            port=port if port is not None else env.port,
        )

    def validate(self) -> list[str]:
        """Return list of validation errors, empty if config is valid."""
        errors = []
        if self.keepalive_interval <= 0:
            errors.append("SSE_KEEPALIVE_INTERVAL must be a positive number of seconds.")
        if self.queue_size < 1:
            errors.append("SSE_QUEUE_SIZE must be at least 1.")
        if not self.default_group:
            errors.append("SSE_DEFAULT_GROUP must not be empty.")
        if not 0 < self.port < 65536:
            errors.append(f"SSE_PORT {self.port} is out of range 1-65535.")
        return errors
