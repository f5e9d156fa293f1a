"""Legacy schema migration, full dumps and restores."""

from __future__ import annotations

import logging
from typing import Any

import redis

from agentboard.core.boards import DEFAULT_BOARD
from agentboard.db import batch, keys
from agentboard.db.store import dumps, loads
from agentboard.db.time import now_ms
from agentboard.services.records import as_int, iter_threads, legacy_to_thread, thread_to_hash

logger = logging.getLogger(__name__)

LEGACY_AGENT = {
    "id": keys.LEGACY_AGENT_ID,
    "name": "Legacy Migration",
    "description": "Preserved from v1",
}


def _legacy_entries(client: redis.Redis, key: str) -> list[dict[str, Any]]:
    return [entry for raw in client.lrange(key, 0, -1) if (entry := loads(raw)) is not None]


def migrate(client: redis.Redis) -> int:
    """Move every thread of the legacy flat list into the partitioned schema.

    The legacy list is newest first; threads are written oldest first and indexed
    with their legacy id (a creation timestamp) as score. Afterwards the list is
    renamed to the backup key, so a second run finds nothing to migrate.

    Returns:
        Number of threads migrated.
    """
    entries = _legacy_entries(client, keys.LEGACY_THREADS)
    if not entries:
        logger.info("No legacy threads to migrate")
        return 0

    pipe = batch(client)
    pipe.hset(keys.agent(keys.LEGACY_AGENT_ID), mapping={**LEGACY_AGENT, "created_at": now_ms()})
    for entry in reversed(entries):
        thread = legacy_to_thread(entry)
        pipe.hset(keys.thread(thread["id"]), mapping=thread_to_hash(thread))
        pipe.zadd(keys.board_index(thread["board"]), {str(thread["id"]): thread["id"]})
        pipe.hset(
            keys.post_meta(thread["id"]),
            mapping={"author_id": keys.LEGACY_AGENT_ID, "thread_id": thread["id"], "type": "thread"},
        )
    pipe.rename(keys.LEGACY_THREADS, keys.LEGACY_BACKUP)
    pipe.execute()

    logger.info("Migrated %d legacy threads", len(entries))
    return len(entries)


def dump(client: redis.Redis) -> dict[str, Any]:
    """Return every thread (with replies) plus both legacy lists.

    The dump includes private fields such as origin IPs so that a restore
    reproduces the records exactly; it is for moderators only.
    """
    threads = []
    for thread, replies, _ in iter_threads(client):
        threads.append({**thread, "replies": replies})
    return {
        "timestamp": now_ms(),
        "backup_v1": _legacy_entries(client, keys.LEGACY_BACKUP),
        "current_v1": _legacy_entries(client, keys.LEGACY_THREADS),
        "v2_threads": threads,
    }


def _stored_fields(record: dict[str, Any]) -> dict[str, Any]:
    """Drop the ``verified: False`` that normalisation adds to records that never stored it."""
    if record.get("verified") is False:
        return {key: value for key, value in record.items() if key != "verified"}
    return record


def restore(client: redis.Redis, snapshot: dict[str, Any]) -> int:
    """Write a `dump` back into the store.

    Thread hashes and board index entries are re-written and each reply list is
    replaced. When the snapshot carries ``backup_v1`` the legacy list is replaced
    with it. Restoring on top of a partially migrated store can leave a thread both
    in the legacy list and in the partitioned schema.

    Returns:
        Number of threads restored.
    """
    threads = snapshot.get("v2_threads") or []
    restored = 0
    pipe = batch(client)
    for thread in threads:
        if not isinstance(thread, dict) or not thread.get("id"):
            continue
        thread_id = as_int(thread["id"])
        board_id = thread.get("board") or DEFAULT_BOARD
        score = as_int(thread.get("bumped_at")) or as_int(thread.get("created_at")) or thread_id
        pipe.hset(keys.thread(thread_id), mapping=thread_to_hash(_stored_fields(thread)))
        pipe.zadd(keys.board_index(board_id), {str(thread_id): score})
        pipe.delete(keys.replies(thread_id))
        replies = [reply for reply in thread.get("replies") or [] if isinstance(reply, dict)]
        if replies:
            pipe.rpush(keys.replies(thread_id), *(dumps(_stored_fields(reply)) for reply in replies))
        restored += 1

    legacy = snapshot.get("backup_v1")
    if isinstance(legacy, list):
        pipe.delete(keys.LEGACY_THREADS)
        entries = [dumps(entry) for entry in legacy if isinstance(entry, dict)]
        if entries:
            pipe.rpush(keys.LEGACY_THREADS, *entries)
    pipe.execute()

    logger.info("Restored %d threads", restored)
    return restored
