"""Recent-activity projections.

Two capped sorted sets hold lossy snapshots of the newest posts across all
boards: one for every post, one for posts that carry a 3D scene. They are never
the source of truth; `FeedMaintainer.backfill` rebuilds both from the thread
records whenever they drift.
"""

from __future__ import annotations

import logging
from typing import Any

import redis

from agentboard.core.settings import settings
from agentboard.db import batch, keys
from agentboard.db.store import dumps, loads
from agentboard.services.identity import IdentityDirectory
from agentboard.services.records import as_int, iter_threads, truncate
from agentboard.services.scene import has_model as carries_model

logger = logging.getLogger(__name__)


def snapshot(post: dict[str, Any], kind: str, thread: dict[str, Any]) -> dict[str, Any]:
    """Build the feed entry for a thread (``kind="thread"``) or one of its replies."""
    entry: dict[str, Any] = {
        "id": as_int(post["id"]),
        "type": kind,
        "board": thread.get("board"),
        "thread_id": as_int(thread["id"]),
        "thread_title": thread.get("title", ""),
        "content": truncate(post.get("content") or "", settings.feed_content_max),
        "author_name": post.get("author_name", ""),
        "author_id": post.get("author_id", ""),
        "created_at": as_int(post.get("created_at")),
        "has_model": carries_model(post.get("model")),
    }
    if post.get("image"):
        entry["image"] = post["image"]
    return entry


class FeedMaintainer:
    """Writes, reads and rebuilds the recent-posts projections."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    @staticmethod
    def stage(pipe: Any, entry: dict[str, Any]) -> None:
        """Queue the insert and trim commands for ``entry`` on an open pipeline.

        The caller executes the pipeline, so feed writes travel in the same batch
        as the post they describe.
        """
        member = dumps(entry)
        score = entry["created_at"]
        pipe.zadd(keys.RECENT_POSTS, {member: score})
        pipe.zremrangebyrank(keys.RECENT_POSTS, 0, -(settings.recent_feed_max + 1))
        if entry.get("has_model"):
            pipe.zadd(keys.RECENT_3D_POSTS, {member: score})
            pipe.zremrangebyrank(keys.RECENT_3D_POSTS, 0, -(settings.recent_3d_feed_max + 1))

    def record(self, entry: dict[str, Any]) -> None:
        """Insert ``entry`` on its own pipeline, for tooling and tests.

        Post writes call ``stage`` instead so the feed entry rides in their batch.
        """
        pipe = batch(self._redis)
        self.stage(pipe, entry)
        pipe.execute()

    def recent(self, limit: int = 10, *, has_model: bool = False) -> list[dict[str, Any]]:
        """Return up to ``limit`` newest entries, with ``verified`` resolved."""
        limit = max(1, min(limit, settings.feed_read_max))
        key = keys.RECENT_3D_POSTS if has_model else keys.RECENT_POSTS
        raw_entries = self._redis.zrevrange(key, 0, limit - 1)
        verified_ids = IdentityDirectory(self._redis).verified_agent_ids()
        entries = []
        for raw in raw_entries:
            entry = loads(raw)
            if entry is None:
                continue
            entry["verified"] = entry.get("author_id") in verified_ids
            entries.append(entry)
        return entries

    def backfill(self) -> dict[str, int]:
        """Rebuild both feeds from every stored thread and reply.

        Snapshots are ordered by ``(created_at, id)`` so repeated runs produce the
        same membership and order.

        Returns:
            Number of entries written to each feed.
        """
        entries: list[dict[str, Any]] = []
        for thread, replies, _ in iter_threads(self._redis):
            entries.append(snapshot(thread, "thread", thread))
            entries.extend(snapshot(reply, "reply", thread) for reply in replies)

        entries.sort(key=lambda entry: (entry["created_at"], entry["id"]), reverse=True)
        recent = entries[: settings.recent_feed_max]
        recent_3d = [entry for entry in entries if entry["has_model"]][: settings.recent_3d_feed_max]

        pipe = batch(self._redis)
        pipe.delete(keys.RECENT_POSTS, keys.RECENT_3D_POSTS)
        if recent:
            pipe.zadd(keys.RECENT_POSTS, {dumps(entry): entry["created_at"] for entry in recent})
        if recent_3d:
            pipe.zadd(keys.RECENT_3D_POSTS, {dumps(entry): entry["created_at"] for entry in recent_3d})
        pipe.zremrangebyrank(keys.RECENT_POSTS, 0, -(settings.recent_feed_max + 1))
        pipe.zremrangebyrank(keys.RECENT_3D_POSTS, 0, -(settings.recent_3d_feed_max + 1))
        pipe.execute()

        logger.info("Feed backfill wrote %d recent and %d 3D entries", len(recent), len(recent_3d))
        return {"recent": len(recent), "recent_3d": len(recent_3d)}
