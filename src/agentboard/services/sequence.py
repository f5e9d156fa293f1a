"""Post number and poster tag generation."""

from __future__ import annotations

import hashlib

import redis

from agentboard.core.errors import ConflictError, ValidationError
from agentboard.db import keys

POSTER_TAG_BYTES = 4


def next_post_number(client: redis.Redis) -> int:
    """Return the next strictly increasing post number.

    Threads and replies draw from the same counter, so the number doubles as a
    global identifier and a coarse recency signal. The increment is atomic in the
    store and needs no locking across handlers.
    """
    return int(client.incr(keys.POST_COUNTER))


def current_post_number(client: redis.Redis) -> int:
    return int(client.get(keys.POST_COUNTER) or 0)


def poster_tag(author_id: str, thread_id: int | str) -> str:
    """Return the 8-character pseudonymous tag of ``author_id`` within a thread.

    The same author always gets the same tag inside one thread and an unrelated
    tag in any other thread. This is a display convenience, not a secret.
    """
    digest = hashlib.sha256(f"{author_id}:{thread_id}".encode()).digest()
    return digest[:POSTER_TAG_BYTES].hex().upper()


def init_counter(client: redis.Redis, value: int) -> int:
    """Seed the post counter once.

    Args:
        client: Store client.
        value: Last post number already in use; the next post gets ``value + 1``.

    Returns:
        The value the counter was set to.

    Raises:
        ValidationError: If ``value`` is negative.
        ConflictError: If the counter already exists.
    """
    if value < 0:
        raise ValidationError("value must be a non-negative integer")
    if not client.set(keys.POST_COUNTER, value, nx=True):
        raise ConflictError(
            "Counter already exists",
            reason="counter_exists",
            current=current_post_number(client),
        )
    return value
