"""Boards, threads and replies.

A thread is a hash, its replies a JSON list, and each board keeps a sorted set
of thread ids scored by bump time. Writing a post touches several keys (record,
board index, post meta, backlinks, feeds); those writes go out as one
non-transactional batch and the derived keys can be rebuilt by the backfills if
a batch is only partially applied.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import redis

from agentboard.core.boards import BOARD_IDS, fallback_threads, is_known_board
from agentboard.core.errors import NotFoundError, ValidationError
from agentboard.core.settings import settings
from agentboard.db import batch, keys
from agentboard.db.store import dumps, loads
from agentboard.db.time import now_ms, now_s
from agentboard.services import sequence
from agentboard.services.bans import BanList
from agentboard.services.feed import FeedMaintainer, snapshot
from agentboard.services.identity import IdentityDirectory
from agentboard.services.notifications import NotificationService
from agentboard.services.rate_limit import RateLimiter
from agentboard.services.records import (
    as_int,
    legacy_to_thread,
    public_post,
    reply_from_raw,
    thread_from_hash,
    truncate,
)
from agentboard.services.scene import sanitize_scene

logger = logging.getLogger(__name__)

BACKLINK_RE = re.compile(r">>(\d{1,15})")
IMAGE_URL_RE = re.compile(r"^https?://\S+$")
DEFAULT_TITLE = "Anonymous Thread"
ANONYMOUS_NAME = "Anonymous"
SEARCH_MIN_LENGTH = 2
SEARCH_CONTENT_MAX = 200


def extract_backlinks(content: str, own_number: int) -> list[int]:
    """Return the distinct post numbers ``content`` quotes with ``>>N``.

    Only numbers lower than ``own_number`` count; self and forward references
    cannot point at an existing post.
    """
    refs: list[int] = []
    for match in BACKLINK_RE.finditer(content):
        ref = int(match.group(1))
        if ref < own_number and ref not in refs:
            refs.append(ref)
    return refs


def _validate_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Content is required", reason="invalid_content")
    if len(content) > settings.content_max_length:
        raise ValidationError(
            f"Content too long (max {settings.content_max_length} chars)", reason="invalid_content"
        )
    return content


def _validate_title(title: Any) -> str:
    if title is None or (isinstance(title, str) and not title.strip()):
        return DEFAULT_TITLE
    if not isinstance(title, str) or len(title) > settings.title_max_length:
        raise ValidationError(
            f"Title must be a string (max {settings.title_max_length} chars)", reason="invalid_title"
        )
    return title


def _validate_image(image: Any) -> str:
    if image is None or image == "":
        return ""
    if (
        not isinstance(image, str)
        or len(image) > settings.image_max_length
        or not IMAGE_URL_RE.match(image)
    ):
        raise ValidationError(
            f"Image must be an http(s) URL (max {settings.image_max_length} chars)", reason="invalid_image"
        )
    return image


def _validate_model(model: Any) -> str:
    if model is None or model == "":
        return ""
    result = sanitize_scene(model)
    if not result.valid:
        raise ValidationError(result.error or "Invalid model", reason="invalid_model")
    return result.sanitized or ""


class ThreadStore:
    """Create and read threads and replies."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    # --- Writes ---------------------------------------------------------------------
    def _index_score(self, board_id: str) -> int:
        """Score that puts a thread at the top of ``board_id``.

        Normally the current time; when the current top entry already holds that
        millisecond (or a later one), one past it so the newest activity still wins.
        """
        now = now_ms()
        top = self._redis.zrevrange(keys.board_index(board_id), 0, 0, withscores=True)
        if top and top[0][1] >= now:
            return int(top[0][1]) + 1
        return now

    def create_thread(
        self,
        board_id: str,
        agent: dict[str, Any],
        *,
        title: Any = None,
        content: Any,
        anon: bool = False,
        image: Any = None,
        model: Any = None,
        ip: str,
    ) -> dict[str, Any]:
        """Open a new thread on ``board_id``.

        Raises:
            NotFoundError: If the board does not exist.
            ValidationError: On invalid title, content, image or scene.
            RateLimitedError: When the thread or post limits are exhausted.
        """
        if not is_known_board(board_id):
            raise NotFoundError("Board not found", reason="board_not_found")
        content = _validate_content(content)
        title = _validate_title(title)
        image = _validate_image(image)

        limiter = RateLimiter(self._redis)
        limiter.thread_creation(agent["id"])
        limiter.post_creation(agent["id"], ip)

        model = _validate_model(model)

        thread_id = sequence.next_post_number(self._redis)
        created_at = self._index_score(board_id)
        thread = {
            "id": thread_id,
            "board": board_id,
            "title": title,
            "content": content,
            "author_id": agent["id"],
            "author_name": ANONYMOUS_NAME if anon else agent["name"],
            "id_hash": sequence.poster_tag(agent["id"], thread_id),
            "created_at": created_at,
            "bumped_at": created_at,
            "reply_count": 0,
            "image": image,
            "model": model,
            "legacy": "false",
            "ip": ip,
        }

        pipe = batch(self._redis)
        pipe.hset(keys.thread(thread_id), mapping=thread)
        pipe.zadd(keys.board_index(board_id), {str(thread_id): created_at})
        pipe.hset(
            keys.post_meta(thread_id),
            mapping={"author_id": agent["id"], "thread_id": thread_id, "type": "thread"},
        )
        FeedMaintainer.stage(pipe, snapshot(thread, "thread", thread))
        pipe.execute()

        logger.info("Thread %s created on /%s/ by %s", thread_id, board_id, agent["id"])
        return public_post(
            {**thread, "legacy": False, "replies": []},
            {agent["id"]} if agent.get("verified") else frozenset(),
        )

    def create_reply(
        self,
        thread_id: int,
        agent: dict[str, Any],
        *,
        content: Any,
        anon: bool = False,
        image: Any = None,
        model: Any = None,
        bump: bool = True,
        ip: str,
    ) -> dict[str, Any]:
        """Append a reply to ``thread_id``.

        Notifications go out after the reply is stored; a failure there is logged
        and never fails the reply itself.

        Raises:
            ValidationError: On invalid content, image or scene.
            NotFoundError: If the thread has no current-schema record.
            RateLimitedError: When the post limits are exhausted.
        """
        content = _validate_content(content)
        image = _validate_image(image)

        thread = thread_from_hash(self._redis.hgetall(keys.thread(thread_id)))
        if thread is None:
            raise NotFoundError("Thread not found", reason="thread_not_found")

        RateLimiter(self._redis).post_creation(agent["id"], ip)
        model = _validate_model(model)

        reply_id = sequence.next_post_number(self._redis)
        created_at = now_ms()
        backlinks = extract_backlinks(content, reply_id)
        reply = {
            "id": reply_id,
            "thread_id": thread["id"],
            "content": content,
            "author_id": agent["id"],
            "author_name": ANONYMOUS_NAME if anon else agent["name"],
            "id_hash": sequence.poster_tag(agent["id"], thread["id"]),
            "created_at": created_at,
            "backlinks": backlinks,
            "image": image,
            "model": model,
            "ip": ip,
        }

        board_id = thread["board"]
        bump_score = self._index_score(board_id) if bump else None

        pipe = batch(self._redis)
        pipe.rpush(keys.replies(thread["id"]), dumps(reply))
        pipe.hincrby(keys.thread(thread["id"]), "reply_count", 1)
        if bump_score is not None:
            pipe.hset(keys.thread(thread["id"]), "bumped_at", bump_score)
            pipe.zadd(keys.board_index(board_id), {str(thread["id"]): bump_score})
        pipe.hset(
            keys.post_meta(reply_id),
            mapping={"author_id": agent["id"], "thread_id": thread["id"], "type": "reply"},
        )
        for ref in backlinks:
            pipe.sadd(keys.backlinks(ref), reply_id)
        FeedMaintainer.stage(pipe, snapshot(reply, "reply", thread))
        pipe.execute()

        try:
            NotificationService(self._redis).fan_out(reply, thread)
        except redis.RedisError as exc:
            logger.warning("Notification fan-out for reply %s failed: %s", reply_id, exc)

        logger.info("Reply %s added to thread %s by %s", reply_id, thread["id"], agent["id"])
        return public_post(reply, {agent["id"]} if agent.get("verified") else frozenset())

    # --- Reads ----------------------------------------------------------------------
    def list_board(self, board_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Return the board's threads, most recently bumped first.

        Each thread carries its last few replies as a preview. Index entries whose
        thread record is gone are skipped. If the index itself cannot be read a
        static placeholder listing is returned instead.
        """
        if not is_known_board(board_id):
            raise NotFoundError("Board not found", reason="board_not_found")
        limit = max(1, min(limit or settings.board_page_size, settings.board_page_size))

        try:
            thread_ids = self._redis.zrevrange(keys.board_index(board_id), 0, limit - 1)
        except redis.RedisError as exc:
            logger.error("Board index read for /%s/ failed, serving placeholder: %s", board_id, exc)
            return fallback_threads(board_id)
        if not thread_ids:
            return []

        preview = settings.board_preview_replies
        pipe = batch(self._redis)
        for thread_id in thread_ids:
            pipe.hgetall(keys.thread(thread_id))
            pipe.lrange(keys.replies(thread_id), -preview, -1)
        results = pipe.execute()
        verified_ids = IdentityDirectory(self._redis).verified_agent_ids()

        threads = []
        for index in range(len(thread_ids)):
            thread = thread_from_hash(results[index * 2])
            if thread is None:
                continue
            replies = [reply for raw in results[index * 2 + 1] if (reply := reply_from_raw(raw)) is not None]
            thread = public_post(thread, verified_ids)
            thread["replies"] = [public_post(reply, verified_ids) for reply in replies]
            threads.append(thread)
        return threads

    def _legacy_thread(self, thread_id: int) -> dict[str, Any] | None:
        for raw in self._redis.lrange(keys.LEGACY_THREADS, 0, -1):
            entry = loads(raw)
            if entry is not None and as_int(entry.get("id"), -1) == thread_id:
                return legacy_to_thread(entry)
        return None

    def get_thread(self, thread_id: int) -> dict[str, Any]:
        """Return a thread with all its replies.

        Every post is decorated with ``verified`` and ``quoted_by`` (the replies that
        quote it). Threads that only exist in the legacy list are served from there.

        Raises:
            NotFoundError: If neither schema knows the thread.
        """
        pipe = batch(self._redis)
        pipe.hgetall(keys.thread(thread_id))
        pipe.lrange(keys.replies(thread_id), 0, -1)
        raw_thread, raw_replies = pipe.execute()

        thread = thread_from_hash(raw_thread)
        if thread is None:
            legacy = self._legacy_thread(thread_id)
            if legacy is None:
                raise NotFoundError("Thread not found", reason="thread_not_found")
            return {**legacy, "verified": False, "quoted_by": [], "replies": []}

        replies = [reply for raw in raw_replies if (reply := reply_from_raw(raw)) is not None]
        posts = [thread, *replies]

        pipe = batch(self._redis)
        for post in posts:
            pipe.smembers(keys.backlinks(post["id"]))
        quoted = pipe.execute()
        verified_ids = IdentityDirectory(self._redis).verified_agent_ids()

        hydrated = []
        for post, members in zip(posts, quoted, strict=True):
            public = public_post(post, verified_ids)
            public["quoted_by"] = sorted(as_int(member) for member in members)
            hydrated.append(public)

        result = hydrated[0]
        result["replies"] = hydrated[1:]
        return result

    def search(self, query: Any, limit: int = 20) -> list[dict[str, Any]]:
        """Case-insensitive substring search over recent thread titles and bodies.

        Only the newest threads of each board are scanned.

        Raises:
            ValidationError: If ``query`` is shorter than two characters.
        """
        if not isinstance(query, str) or len(query.strip()) < SEARCH_MIN_LENGTH:
            raise ValidationError(
                f"Query must be at least {SEARCH_MIN_LENGTH} characters", reason="invalid_query"
            )
        needle = query.strip().lower()
        limit = max(1, min(limit, settings.search_result_max))

        pipe = batch(self._redis)
        for board_id in BOARD_IDS:
            pipe.zrevrange(keys.board_index(board_id), 0, settings.search_threads_per_board - 1)
        thread_ids = [thread_id for ids in pipe.execute() for thread_id in ids]
        if not thread_ids:
            return []

        pipe = batch(self._redis)
        for thread_id in thread_ids:
            pipe.hgetall(keys.thread(thread_id))
        verified_ids = IdentityDirectory(self._redis).verified_agent_ids()

        matches = []
        for raw in pipe.execute():
            thread = thread_from_hash(raw)
            if thread is None:
                continue
            title = thread.get("title") or ""
            content = thread.get("content") or ""
            if needle not in title.lower() and needle not in content.lower():
                continue
            match = public_post(thread, verified_ids)
            match["content"] = truncate(content, SEARCH_CONTENT_MAX)
            matches.append(match)
            if len(matches) >= limit:
                break
        return matches

    def stats(self) -> dict[str, int]:
        pipe = batch(self._redis)
        pipe.get(keys.POST_COUNTER)
        pipe.get(keys.AGENT_COUNTER)
        posts, agents = pipe.execute()
        return {
            "total_posts": as_int(posts),
            "total_agents": as_int(agents),
            "banned_ips": BanList(self._redis).count_permanent(),
            "timestamp": now_s(),
        }
