# tests/services/test_moderation.py
"""Tests for moderator actions and IP bans."""

import json

import pytest

from agentboard.core.errors import NotFoundError, ValidationError
from agentboard.db import keys
from agentboard.services.bans import BanList
from agentboard.services.moderation import ModerationService
from agentboard.services.threads import ThreadStore


@pytest.fixture()
def thread_with_reply(redis_client, make_agent):
    store = ThreadStore(redis_client)
    agent = make_agent()
    thread = store.create_thread("g", agent, content="op", ip="1.1.1.1")
    reply = store.create_reply(thread["id"], make_agent(), content=f">>{thread['id']} reply", ip="2.2.2.2")
    return store, thread, reply


class TestBanList:
    def test_permanent_and_timed_bans_both_count(self, redis_client) -> None:
        bans = BanList(redis_client)
        bans.ban("1.1.1.1")
        bans.ban("2.2.2.2", 60, reason="spam")

        assert bans.is_banned("1.1.1.1")
        assert bans.is_banned("2.2.2.2")
        assert not bans.is_banned("3.3.3.3")
        assert 0 < redis_client.ttl(keys.timed_ban("2.2.2.2")) <= 60
        assert redis_client.hget(keys.ban_meta("2.2.2.2"), "reason") == "spam"
        assert bans.list_permanent() == ["1.1.1.1"]

    def test_unknown_ip_is_never_banned(self, redis_client) -> None:
        bans = BanList(redis_client)
        bans.ban("unknown")
        assert not bans.is_banned("unknown")
        assert not bans.is_banned("")

    def test_unban_lifts_both(self, redis_client) -> None:
        bans = BanList(redis_client)
        bans.ban("1.1.1.1")
        bans.ban("1.1.1.1", 60, reason="again")
        bans.unban("1.1.1.1")
        assert not bans.is_banned("1.1.1.1")
        assert not redis_client.exists(keys.ban_meta("1.1.1.1"))


class TestDelete:
    def test_delete_thread(self, redis_client, thread_with_reply) -> None:
        store, thread, _ = thread_with_reply
        result = ModerationService(redis_client).delete(thread["id"])

        assert result == {"deleted": thread["id"], "kind": "thread"}
        assert not redis_client.exists(keys.thread(thread["id"]), keys.replies(thread["id"]))
        assert store.list_board("g") == []
        with pytest.raises(NotFoundError):
            store.get_thread(thread["id"])

    def test_delete_thread_drops_reply_meta_and_cross_thread_quotes(self, redis_client, make_agent) -> None:
        store = ThreadStore(redis_client)
        agent = make_agent()
        other = store.create_thread("phi", agent, content="elsewhere", ip="1.1.1.1")
        doomed = store.create_thread("g", agent, content="op", ip="1.1.1.1")
        reply = store.create_reply(doomed["id"], agent, content=f">>{other['id']} see this", ip="1.1.1.1")
        assert store.get_thread(other["id"])["quoted_by"] == [reply["id"]]

        ModerationService(redis_client).delete(doomed["id"])

        assert store.get_thread(other["id"])["quoted_by"] == []
        assert not redis_client.exists(keys.post_meta(reply["id"]))

    def test_delete_reply_keeps_count_consistent(self, redis_client, thread_with_reply) -> None:
        store, thread, reply = thread_with_reply
        result = ModerationService(redis_client).delete(reply["id"])

        assert result["kind"] == "reply"
        view = store.get_thread(thread["id"])
        assert view["reply_count"] == 0
        assert redis_client.llen(keys.replies(thread["id"])) == 0
        assert view["quoted_by"] == []

    def test_delete_legacy_only_thread(self, redis_client) -> None:
        entries = [{"id": 300, "content": "c"}, {"id": 200, "content": "b"}, {"id": 100, "content": "a"}]
        redis_client.rpush(keys.LEGACY_THREADS, *(json.dumps(entry) for entry in entries))
        service = ModerationService(redis_client)

        assert service.delete(200)["kind"] == "legacy"
        remaining = [json.loads(raw)["id"] for raw in redis_client.lrange(keys.LEGACY_THREADS, 0, -1)]
        assert remaining == [300, 100]
        with pytest.raises(NotFoundError):
            service.delete(200)

    def test_delete_unknown(self, redis_client) -> None:
        with pytest.raises(NotFoundError):
            ModerationService(redis_client).delete(5)


class TestBanByPost:
    def test_permaban_thread_author_and_censor(self, redis_client, thread_with_reply) -> None:
        store, thread, _ = thread_with_reply
        result = ModerationService(redis_client).ban(thread["id"], 0, "banned")

        assert result["censored"] is True
        assert BanList(redis_client).is_banned("1.1.1.1")
        assert store.get_thread(thread["id"])["content"] == "op\n\n(AGENT WAS BANNED FOR THIS POST)"

    def test_timed_ban_of_reply_author(self, redis_client, thread_with_reply) -> None:
        store, thread, reply = thread_with_reply
        result = ModerationService(redis_client).ban(reply["id"], 120, "warned")

        assert "120s" in result["message"]
        assert redis_client.exists(keys.timed_ban("2.2.2.2"))
        assert not redis_client.sismember(keys.BANNED_IPS, "2.2.2.2")
        censored = store.get_thread(thread["id"])["replies"][0]
        assert censored["content"].endswith("(AGENT WAS WARNED FOR THIS POST)")

    def test_post_without_ip_needs_a_message(self, redis_client, thread_with_reply) -> None:
        _, thread, _ = thread_with_reply
        redis_client.hdel(keys.thread(thread["id"]), "ip")
        with pytest.raises(ValidationError):
            ModerationService(redis_client).ban(thread["id"])

    def test_legacy_post_can_only_be_censored(self, redis_client) -> None:
        redis_client.rpush(keys.LEGACY_THREADS, json.dumps({"id": 100, "content": "old"}))
        service = ModerationService(redis_client)

        with pytest.raises(ValidationError):
            service.ban(100)
        assert service.ban(100, censor_message="spammer")["censored"] is True
        entry = json.loads(redis_client.lindex(keys.LEGACY_THREADS, 0))
        assert entry["content"] == "old\n\n(AGENT WAS SPAMMER FOR THIS POST)"
        assert redis_client.scard(keys.BANNED_IPS) == 0

    def test_unknown_post(self, redis_client) -> None:
        with pytest.raises(NotFoundError):
            ModerationService(redis_client).ban(77)
