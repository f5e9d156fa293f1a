"""Moderator actions on posts.

Posts may live in three places: a current thread hash, a reply inside a
thread's reply list (found through its post meta), or the legacy flat list.
Every action tries them in that order.
"""

from __future__ import annotations

import logging
from typing import Any

import redis

from agentboard.core.errors import NotFoundError, ValidationError
from agentboard.db import batch, keys
from agentboard.db.store import dumps, loads
from agentboard.services.bans import BanList
from agentboard.services.records import as_int, reply_from_raw, thread_from_hash

logger = logging.getLogger(__name__)


def censor_suffix(message: str) -> str:
    return f"\n\n(AGENT WAS {message.upper()} FOR THIS POST)"


class ModerationService:
    """Delete, censor and ban by post number."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def _find_reply(self, post_id: int) -> tuple[str, int, str, dict[str, Any]] | None:
        """Locate a reply as ``(list_key, index, raw, reply)`` via its post meta."""
        meta = self._redis.hgetall(keys.post_meta(post_id))
        if not meta or meta.get("type") != "reply":
            return None
        list_key = keys.replies(meta["thread_id"])
        for index, raw in enumerate(self._redis.lrange(list_key, 0, -1)):
            reply = reply_from_raw(raw)
            if reply is not None and reply["id"] == post_id:
                return list_key, index, raw, reply
        return None

    def _find_legacy(self, post_id: int) -> tuple[list[str], int] | None:
        entries = self._redis.lrange(keys.LEGACY_THREADS, 0, -1)
        for index, raw in enumerate(entries):
            entry = loads(raw)
            if entry is not None and as_int(entry.get("id"), -1) == post_id:
                return entries, index
        return None

    def delete(self, post_id: int) -> dict[str, Any]:
        """Remove a post wherever it lives.

        A thread takes its replies, meta and board-index entry with it, along with
        the meta and backlink edges of every reply. A reply is removed from its
        parent's list and the parent's reply count drops by one.

        Raises:
            NotFoundError: If no schema holds ``post_id``.
        """
        thread = thread_from_hash(self._redis.hgetall(keys.thread(post_id)))
        if thread is not None:
            replies = [
                reply
                for raw in self._redis.lrange(keys.replies(post_id), 0, -1)
                if (reply := reply_from_raw(raw)) is not None
            ]
            pipe = batch(self._redis)
            pipe.delete(
                keys.thread(post_id),
                keys.replies(post_id),
                keys.post_meta(post_id),
                keys.backlinks(post_id),
            )
            for reply in replies:
                pipe.delete(keys.post_meta(reply["id"]), keys.backlinks(reply["id"]))
                for ref in reply["backlinks"]:
                    pipe.srem(keys.backlinks(ref), reply["id"])
            pipe.zrem(keys.board_index(thread["board"]), str(post_id))
            pipe.execute()
            logger.info("Deleted thread %s from /%s/", post_id, thread["board"])
            return {"deleted": post_id, "kind": "thread"}

        found = self._find_reply(post_id)
        if found is not None:
            list_key, _, raw, reply = found
            pipe = batch(self._redis)
            pipe.lrem(list_key, 1, raw)
            pipe.hincrby(keys.thread(reply["thread_id"]), "reply_count", -1)
            pipe.delete(keys.post_meta(post_id), keys.backlinks(post_id))
            for ref in reply["backlinks"]:
                pipe.srem(keys.backlinks(ref), post_id)
            pipe.execute()
            logger.info("Deleted reply %s from thread %s", post_id, reply["thread_id"])
            return {"deleted": post_id, "kind": "reply"}

        legacy = self._find_legacy(post_id)
        if legacy is not None:
            entries, index = legacy
            remaining = entries[:index] + entries[index + 1:]
            pipe = batch(self._redis)
            pipe.delete(keys.LEGACY_THREADS)
            if remaining:
                pipe.rpush(keys.LEGACY_THREADS, *remaining)
            pipe.execute()
            logger.info("Deleted legacy post %s", post_id)
            return {"deleted": post_id, "kind": "legacy"}

        raise NotFoundError(f"Post {post_id} not found", reason="post_not_found")

    def ban(self, post_id: int, duration_seconds: int = 0, censor_message: str | None = None) -> dict[str, Any]:
        """Ban the IP behind a post and optionally censor the post.

        Legacy posts and posts stored without an IP can only be censored.

        Raises:
            NotFoundError: If no schema holds ``post_id``.
            ValidationError: If there is neither an IP to ban nor a message to append.
        """
        if duration_seconds < 0:
            raise ValidationError("duration must be a non-negative number of seconds")
        bans = BanList(self._redis)

        thread_key = keys.thread(post_id)
        thread = thread_from_hash(self._redis.hgetall(thread_key))
        if thread is not None:
            return self._ban_and_censor(
                bans,
                thread.get("ip"),
                duration_seconds,
                censor_message,
                lambda pipe: pipe.hset(
                    thread_key, "content", (thread.get("content") or "") + censor_suffix(censor_message or "")
                ),
            )

        found = self._find_reply(post_id)
        if found is not None:
            list_key, index, _, reply = found

            def censor_reply(pipe: Any) -> None:
                reply["content"] = (reply.get("content") or "") + censor_suffix(censor_message or "")
                pipe.lset(list_key, index, dumps(reply))

            return self._ban_and_censor(bans, reply.get("ip"), duration_seconds, censor_message, censor_reply)

        legacy = self._find_legacy(post_id)
        if legacy is not None:
            if not censor_message:
                raise ValidationError(
                    "Legacy posts carry no IP; supply a censor message", reason="nothing_to_do"
                )
            entries, index = legacy
            entry = loads(entries[index]) or {}
            entry["content"] = (entry.get("content") or "") + censor_suffix(censor_message)
            self._redis.lset(keys.LEGACY_THREADS, index, dumps(entry))
            logger.info("Censored legacy post %s", post_id)
            return {"message": f"Legacy post {post_id} censored (no IP ban possible).", "censored": True}

        raise NotFoundError(f"Post {post_id} not found", reason="post_not_found")

    def _ban_and_censor(
        self,
        bans: BanList,
        ip: str | None,
        duration_seconds: int,
        censor_message: str | None,
        censor: Any,
    ) -> dict[str, Any]:
        if not ip and not censor_message:
            raise ValidationError("No IP to ban and no message to append", reason="nothing_to_do")

        summary = bans.ban(ip, duration_seconds) if ip else "No IP recorded for this post; ban skipped."
        if censor_message:
            pipe = batch(self._redis)
            censor(pipe)
            pipe.execute()
        return {"message": summary, "censored": bool(censor_message)}
