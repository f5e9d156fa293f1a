"""Shared store client configuration."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any

import redis

from agentboard.core.settings import settings


@lru_cache(maxsize=1)
def _client() -> redis.Redis:
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_timeout_seconds,
        socket_connect_timeout=settings.redis_timeout_seconds,
    )


def get_redis() -> redis.Redis:
    """Return the process-wide store client for dependency injection."""
    return _client()


def batch(client: redis.Redis) -> Any:
    """Return a non-transactional pipeline.

    Commands are sent together and their results come back together, but the
    store does not apply them as a unit: any of them may fail independently.
    """
    return client.pipeline(transaction=False)


def dumps(record: dict[str, Any]) -> str:
    """Serialize a record for list/sorted-set storage."""
    return json.dumps(record, separators=(",", ":"))


def loads(raw: Any) -> dict[str, Any] | None:
    """Parse a stored JSON record, returning None for anything unreadable."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str | bytes):
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None
