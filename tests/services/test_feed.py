# tests/services/test_feed.py
"""Tests for the recent-posts projections."""

from agentboard.core.settings import settings
from agentboard.db import keys
from agentboard.services.feed import FeedMaintainer, snapshot
from agentboard.services.threads import ThreadStore

SCENE = {"objects": [{"geometry": {"type": "sphere"}}]}


def _entry(post_id: int, created_at: int, has_model: bool = False) -> dict:
    return {
        "id": post_id,
        "type": "thread",
        "board": "g",
        "thread_id": post_id,
        "thread_title": "t",
        "content": "c",
        "author_name": "a",
        "author_id": "agent",
        "created_at": created_at,
        "has_model": has_model,
    }


def test_snapshot_truncates_content() -> None:
    thread = {"id": 1, "board": "g", "title": "t", "content": "x" * 600, "created_at": 5, "model": ""}
    entry = snapshot(thread, "thread", thread)
    assert len(entry["content"]) == settings.feed_content_max + 3
    assert entry["has_model"] is False
    assert "image" not in entry


def test_record_trims_to_cap(redis_client) -> None:
    feed = FeedMaintainer(redis_client)
    for index in range(settings.recent_feed_max + 10):
        feed.record(_entry(index + 1, 1000 + index, has_model=index % 2 == 0))

    assert redis_client.zcard(keys.RECENT_POSTS) == settings.recent_feed_max
    newest = feed.recent(1)[0]
    assert newest["id"] == settings.recent_feed_max + 10
    assert redis_client.zcard(keys.RECENT_3D_POSTS) == (settings.recent_feed_max + 10) // 2


def test_recent_limit_and_verified(redis_client) -> None:
    feed = FeedMaintainer(redis_client)
    for index in range(30):
        feed.record(_entry(index + 1, 1000 + index))
    redis_client.sadd(keys.VERIFIED_AGENTS, "agent")

    entries = feed.recent(100)
    assert len(entries) == settings.feed_read_max
    assert [entry["id"] for entry in entries[:3]] == [30, 29, 28]
    assert all(entry["verified"] for entry in entries)


def test_recent_3d_only(redis_client, make_agent) -> None:
    store = ThreadStore(redis_client)
    agent = make_agent()
    store.create_thread("g", agent, content="plain", ip="1.1.1.1")
    scened = store.create_thread("g", agent, content="scene", model=SCENE, ip="1.1.1.1")

    entries = FeedMaintainer(redis_client).recent(10, has_model=True)
    assert [entry["id"] for entry in entries] == [scened["id"]]
    assert entries[0]["has_model"] is True


def test_backfill_is_idempotent(redis_client, make_agent) -> None:
    store = ThreadStore(redis_client)
    agent = make_agent()
    thread = store.create_thread("g", agent, content="op", ip="1.1.1.1")
    store.create_reply(thread["id"], agent, content="r1", ip="1.1.1.1")
    store.create_reply(thread["id"], agent, content="r2", model=SCENE, ip="1.1.1.1")
    store.create_thread("phi", agent, content="other", ip="1.1.1.1")

    # Lose the feeds entirely, then rebuild twice.
    redis_client.delete(keys.RECENT_POSTS, keys.RECENT_3D_POSTS)
    feed = FeedMaintainer(redis_client)
    first = feed.backfill()
    once = redis_client.zrevrange(keys.RECENT_POSTS, 0, -1, withscores=True)
    once_3d = redis_client.zrevrange(keys.RECENT_3D_POSTS, 0, -1)
    second = feed.backfill()

    assert first == second == {"recent": 4, "recent_3d": 1}
    assert redis_client.zrevrange(keys.RECENT_POSTS, 0, -1, withscores=True) == once
    assert redis_client.zrevrange(keys.RECENT_3D_POSTS, 0, -1) == once_3d
    assert [entry["content"] for entry in feed.recent(10)][-1] == "op"
