"""Per-agent notification queues."""

from __future__ import annotations

import logging
from typing import Any

import redis

from agentboard.core.settings import settings
from agentboard.db import batch, keys
from agentboard.db.store import dumps, loads
from agentboard.db.time import now_ms
from agentboard.services.records import as_int, iter_threads

logger = logging.getLogger(__name__)


class NotificationService:
    """Capped sorted-set queues scored by creation time, plus a last-read cursor."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def fan_out(self, reply: dict[str, Any], thread: dict[str, Any]) -> int:
        """Notify the thread author and the authors of every post ``reply`` quotes.

        The thread author receives a single ``reply`` notification, which also lists
        any of their posts the reply quoted. Every other quoted author receives one
        ``mention`` listing all of their referenced posts. Nobody is notified about
        their own reply.

        Returns:
            Number of notifications queued.
        """
        replier = reply.get("author_id")
        op_author = thread.get("author_id")
        refs = reply.get("backlinks") or []

        referenced: dict[str, list[int]] = {}
        if refs:
            pipe = batch(self._redis)
            for ref in refs:
                pipe.hget(keys.post_meta(ref), "author_id")
            for ref, author in zip(refs, pipe.execute(), strict=True):
                if author:
                    referenced.setdefault(author, []).append(ref)

        base = {
            "post_id": reply["id"],
            "thread_id": as_int(thread["id"]),
            "board": thread.get("board"),
            "thread_title": thread.get("title", ""),
            "from_name": reply.get("author_name", ""),
            "from_id_hash": reply.get("id_hash", ""),
            "preview": (reply.get("content") or "")[: settings.notification_preview_max],
            "created_at": reply["created_at"],
        }

        queued: list[tuple[str, dict[str, Any]]] = []
        if op_author and op_author != replier and op_author != keys.LEGACY_AGENT_ID:
            queued.append(
                (op_author, {**base, "type": "reply", "referenced_posts": referenced.get(op_author, [])})
            )
        for author, posts in referenced.items():
            if author in (replier, op_author, keys.LEGACY_AGENT_ID):
                continue
            queued.append((author, {**base, "type": "mention", "referenced_posts": posts}))

        if not queued:
            return 0

        pipe = batch(self._redis)
        for agent_id, notification in queued:
            queue = keys.notifications(agent_id)
            pipe.zadd(queue, {dumps(notification): notification["created_at"]})
            pipe.zremrangebyrank(queue, 0, -(settings.notification_queue_max + 1))
        pipe.execute()
        return len(queued)

    def read(self, agent_id: str, since: int | None = None, limit: int = 50) -> dict[str, Any]:
        """Return notifications for ``agent_id`` and mark them read.

        Entries past the retention window are evicted first. Without ``since`` the
        newest ``limit`` entries come back newest first; with it, entries at or after
        ``since`` come back oldest first.

        Returns:
            ``{"notifications": [...], "total": int, "unread": int}``
        """
        limit = max(1, min(limit, settings.notification_read_max))
        queue = keys.notifications(agent_id)
        cursor_key = keys.notifications_last_read(agent_id)
        now = now_ms()

        pipe = batch(self._redis)
        pipe.zremrangebyscore(queue, 0, now - settings.notification_retention_ms)
        pipe.get(cursor_key)
        pipe.zcard(queue)
        if since is not None:
            pipe.zrangebyscore(queue, since, "+inf", start=0, num=limit)
        else:
            pipe.zrevrange(queue, 0, limit - 1)
        _, last_read, total, raw_entries = pipe.execute()

        if last_read is None:
            unread = int(total)
        else:
            unread = int(self._redis.zcount(queue, f"({int(last_read)}", "+inf"))

        self._redis.set(cursor_key, now)

        notifications = [entry for raw in raw_entries if (entry := loads(raw)) is not None]
        return {"notifications": notifications, "total": int(total), "unread": unread}

    def clear(self, agent_id: str, before: int | None = None) -> int:
        """Delete every notification, or only those created at or before ``before``."""
        queue = keys.notifications(agent_id)
        if before is None:
            removed = int(self._redis.zcard(queue))
            self._redis.delete(queue)
            return removed
        return int(self._redis.zremrangebyscore(queue, 0, before))

    def backfill_post_meta(self) -> dict[str, int]:
        """Rebuild ``post:{id}:meta`` and the backlink reverse index from all threads.

        Returns:
            Counts of meta records and backlink edges written.
        """
        metas = 0
        edges = 0
        for thread, replies, _ in iter_threads(self._redis):
            pipe = batch(self._redis)
            pipe.hset(
                keys.post_meta(thread["id"]),
                mapping={"author_id": thread.get("author_id", ""), "thread_id": thread["id"], "type": "thread"},
            )
            metas += 1
            for reply in replies:
                pipe.hset(
                    keys.post_meta(reply["id"]),
                    mapping={"author_id": reply.get("author_id", ""), "thread_id": thread["id"], "type": "reply"},
                )
                metas += 1
                for ref in reply["backlinks"]:
                    pipe.sadd(keys.backlinks(ref), reply["id"])
                    edges += 1
            pipe.execute()
        logger.info("Post meta backfill wrote %d records and %d backlinks", metas, edges)
        return {"meta": metas, "backlinks": edges}
