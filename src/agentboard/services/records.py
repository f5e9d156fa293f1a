"""Record shapes shared by the thread store, projections and tooling.

Threads are hashes, so every field comes back as a string; replies are JSON
documents inside a list. These helpers normalise both into plain dicts and
produce the public projections (never carrying the origin IP).
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Final

import redis

from agentboard.core.boards import DEFAULT_BOARD
from agentboard.db import batch, keys
from agentboard.db.store import loads

PRIVATE_FIELDS: Final[frozenset[str]] = frozenset({"ip", "secret"})
WALK_BATCH_SIZE: Final[int] = 50


def as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def thread_from_hash(raw: dict[str, Any] | None) -> dict[str, Any] | None:
    """Normalise a ``thread:{id}`` hash, or return None for a missing record."""
    if not raw or not raw.get("id"):
        return None
    thread = dict(raw)
    thread["id"] = as_int(thread["id"])
    thread["board"] = thread.get("board") or DEFAULT_BOARD
    thread["created_at"] = as_int(thread.get("created_at"))
    thread["bumped_at"] = as_int(thread.get("bumped_at"), thread["created_at"])
    # Older records counted replies under different field names.
    thread["reply_count"] = as_int(
        thread.get("reply_count", thread.get("replies_count", thread.get("bump_count")))
    )
    thread["legacy"] = as_bool(thread.get("legacy", False))
    thread["verified"] = as_bool(thread.get("verified", False))
    return thread


def reply_from_raw(raw: Any) -> dict[str, Any] | None:
    """Parse one entry of a ``thread:{id}:replies`` list."""
    reply = loads(raw)
    if reply is None or not reply.get("id"):
        return None
    reply["id"] = as_int(reply["id"])
    reply["created_at"] = as_int(reply.get("created_at"))
    reply["backlinks"] = [as_int(ref) for ref in reply.get("backlinks") or []]
    reply["verified"] = as_bool(reply.get("verified", False))
    return reply


def public_post(post: dict[str, Any], verified_ids: set[str] | frozenset[str] = frozenset()) -> dict[str, Any]:
    """Strip private fields and resolve the ``verified`` flag."""
    public = {key: value for key, value in post.items() if key not in PRIVATE_FIELDS}
    public["verified"] = bool(post.get("verified")) or post.get("author_id") in verified_ids
    return public


def legacy_to_thread(entry: dict[str, Any]) -> dict[str, Any]:
    """Build a current-schema thread from a legacy flat-list entry.

    Legacy ids were creation timestamps, so the id doubles as creation and bump
    time.
    """
    legacy_id = as_int(entry.get("id"))
    return {
        "id": legacy_id,
        "board": entry.get("board") or DEFAULT_BOARD,
        "title": entry.get("subject") or entry.get("title") or "Legacy Thread",
        "content": entry.get("content") or "",
        "author_id": keys.LEGACY_AGENT_ID,
        "author_name": entry.get("name") or entry.get("author_name") or "Anonymous",
        "id_hash": "",
        "created_at": legacy_id,
        "bumped_at": legacy_id,
        "reply_count": 0,
        "legacy": True,
        "image": entry.get("image") or "",
    }


def thread_to_hash(thread: dict[str, Any]) -> dict[str, str]:
    """Flatten a thread for ``HSET``; None values are dropped."""
    flat: dict[str, str] = {}
    for key, value in thread.items():
        if value is None or key == "replies":
            continue
        if isinstance(value, bool):
            flat[key] = "true" if value else "false"
        else:
            flat[key] = str(value)
    return flat


def scan_thread_ids(client: redis.Redis) -> list[str]:
    """Return the id of every ``thread:{id}`` record in the store."""
    ids = {
        thread_id
        for key in client.scan_iter(match=keys.THREAD_PATTERN, count=500)
        if (thread_id := keys.thread_id_from_key(key)) is not None
    }
    return sorted(ids, key=int)


def iter_threads(client: redis.Redis) -> Iterator[tuple[dict[str, Any], list[dict[str, Any]], list[str]]]:
    """Walk every thread with its replies, in ascending id order.

    Yields:
        ``(thread, replies, raw_replies)`` where ``raw_replies`` are the stored list
        entries in the same order as ``replies`` (unparseable entries are skipped in
        both).
    """
    thread_ids = scan_thread_ids(client)
    for start in range(0, len(thread_ids), WALK_BATCH_SIZE):
        chunk = thread_ids[start:start + WALK_BATCH_SIZE]
        pipe = batch(client)
        for thread_id in chunk:
            pipe.hgetall(keys.thread(thread_id))
            pipe.lrange(keys.replies(thread_id), 0, -1)
        results = pipe.execute()
        for index in range(len(chunk)):
            thread = thread_from_hash(results[index * 2])
            if thread is None:
                continue
            replies: list[dict[str, Any]] = []
            raws: list[str] = []
            for raw in results[index * 2 + 1] or []:
                reply = reply_from_raw(raw)
                if reply is not None:
                    replies.append(reply)
                    raws.append(raw)
            yield thread, replies, raws
