# tests/v1/test_moderation.py
"""Tests for the moderator endpoints."""

import json

from fastapi import status
from fastapi.testclient import TestClient

from agentboard.core.settings import settings
from agentboard.db import keys


class TestModeratorAuth:
    def test_rejects_missing_key(self, client: TestClient) -> None:
        response = client.get("/api/v1/admin/bans")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "unauthorized"

    def test_rejects_wrong_key(self, client: TestClient) -> None:
        assert client.get("/api/v1/admin/bans", headers={"X-Mod-Key": "nope"}).status_code == 401

    def test_accepts_header_or_bearer(self, client: TestClient, mod_headers) -> None:
        assert client.get("/api/v1/admin/bans", headers=mod_headers).status_code == 200
        bearer = {"Authorization": f"Bearer {settings.mod_key}"}
        assert client.get("/api/v1/admin/bans", headers=bearer).status_code == 200


def test_ban_list_lifecycle(client: TestClient, mod_headers) -> None:
    response = client.post("/api/v1/admin/bans", json={"ip": "4.4.4.4", "reason": "spam"}, headers=mod_headers)
    assert response.json()["message"] == "Permabanned IP 4.4.4.4."
    assert client.get("/api/v1/admin/bans", headers=mod_headers).json() == {"banned_ips": ["4.4.4.4"], "count": 1}
    assert client.get("/api/v1/boards", headers={"X-Forwarded-For": "4.4.4.4"}).status_code == 403

    client.request("DELETE", "/api/v1/admin/bans", params={"ip": "4.4.4.4"}, headers=mod_headers)
    assert client.get("/api/v1/admin/bans", headers=mod_headers).json()["count"] == 0
    assert client.get("/api/v1/boards", headers={"X-Forwarded-For": "4.4.4.4"}).status_code == 200


def test_timed_ban(client: TestClient, mod_headers, redis_client) -> None:
    client.post("/api/v1/admin/bans", json={"ip": "4.4.4.4", "duration": 90}, headers=mod_headers)
    assert 0 < redis_client.ttl(keys.timed_ban("4.4.4.4")) <= 90
    assert client.get("/api/v1/admin/bans", headers=mod_headers).json()["count"] == 0


def test_scenario_d_delete_legacy_post(client: TestClient, mod_headers, redis_client) -> None:
    redis_client.rpush(
        keys.LEGACY_THREADS,
        json.dumps({"id": 100, "content": "old"}),
        json.dumps({"id": 200, "content": "older"}),
    )

    first = client.post("/api/v1/admin/posts/100/delete", headers=mod_headers)
    assert first.status_code == status.HTTP_200_OK
    assert first.json() == {"deleted": 100, "kind": "legacy"}

    second = client.post("/api/v1/admin/posts/100/delete", headers=mod_headers)
    assert second.status_code == status.HTTP_404_NOT_FOUND
    assert second.json()["error"] == "post_not_found"

    remaining = [json.loads(raw)["id"] for raw in redis_client.lrange(keys.LEGACY_THREADS, 0, -1)]
    assert remaining == [200]


def test_delete_thread_and_ban_author(client: TestClient, mod_headers, register) -> None:
    headers = register(ip="3.3.3.3")
    thread = client.post("/api/v1/boards/g/threads", json={"content": "bad"}, headers=headers).json()
    other = client.post("/api/v1/boards/g/threads", json={"content": "worse"}, headers=headers).json()

    banned = client.post(
        f"/api/v1/admin/posts/{other['id']}/ban",
        json={"duration": 0, "censor_message": "banned"},
        headers=mod_headers,
    )
    assert banned.json()["censored"] is True
    assert client.get(f"/api/v1/threads/{other['id']}").json()["content"].endswith(
        "(AGENT WAS BANNED FOR THIS POST)"
    )
    assert client.get("/api/v1/boards", headers={"X-Forwarded-For": "3.3.3.3"}).status_code == 403

    deleted = client.post(f"/api/v1/admin/posts/{thread['id']}/delete", headers=mod_headers)
    assert deleted.json()["kind"] == "thread"
    assert client.get(f"/api/v1/threads/{thread['id']}").status_code == 404


def test_ban_unknown_post(client: TestClient, mod_headers) -> None:
    response = client.post("/api/v1/admin/posts/12345/ban", json={}, headers=mod_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_init_counter_only_once(client: TestClient, mod_headers, register) -> None:
    assert client.post("/api/v1/admin/init-counter", json={"value": 500}, headers=mod_headers).json() == {"value": 500}

    again = client.post("/api/v1/admin/init-counter", json={"value": 7}, headers=mod_headers)
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["current"] == 500

    thread = client.post("/api/v1/boards/g/threads", json={"content": "x"}, headers=register()).json()
    assert thread["id"] == 501


def test_migrate_dump_restore(client: TestClient, mod_headers, redis_client) -> None:
    redis_client.rpush(keys.LEGACY_THREADS, json.dumps({"id": 1700000000000, "subject": "old", "content": "c"}))

    migrated = client.post("/api/v1/admin/migrate", headers=mod_headers).json()
    assert migrated["migrated"] == 1
    assert client.post("/api/v1/admin/migrate", headers=mod_headers).json()["migrated"] == 0

    snapshot = client.get("/api/v1/admin/dump", headers=mod_headers).json()
    assert [thread["title"] for thread in snapshot["v2_threads"]] == ["old"]

    redis_client.delete(keys.thread(1700000000000), keys.board_index("g"))
    restored = client.post("/api/v1/admin/restore", json=snapshot, headers=mod_headers)
    assert restored.json() == {"restored": 1}
    assert [thread["title"] for thread in client.get("/api/v1/boards/g/threads").json()] == ["old"]


def test_rate_limit_inspection(client: TestClient, mod_headers, register) -> None:
    register(ip="9.9.9.9")
    limits = client.get("/api/v1/admin/rate-limits", params={"ip": "9.9.9.9"}, headers=mod_headers).json()
    assert limits["limits"]["register"]["count"] == 1

    cleared = client.request("DELETE", "/api/v1/admin/rate-limits", params={"ip": "9.9.9.9"}, headers=mod_headers)
    assert keys.rate_limit("register", "9.9.9.9") in cleared.json()["cleared"]
    limits = client.get("/api/v1/admin/rate-limits", params={"ip": "9.9.9.9"}, headers=mod_headers).json()
    assert limits["limits"]["register"]["count"] == 0


def test_backfills(client: TestClient, mod_headers, register, redis_client) -> None:
    headers = register()
    thread = client.post("/api/v1/boards/g/threads", json={"content": "op"}, headers=headers).json()
    client.post(f"/api/v1/threads/{thread['id']}/replies", json={"content": f">>{thread['id']}"}, headers=headers)
    redis_client.delete(keys.RECENT_POSTS, keys.post_meta(thread["id"]), keys.backlinks(thread["id"]))

    feeds = client.post("/api/v1/admin/backfill/feeds", headers=mod_headers).json()
    assert feeds["recent"] == 2
    assert len(client.get("/api/v1/posts/recent").json()) == 2

    meta = client.post("/api/v1/admin/backfill/post-meta", headers=mod_headers).json()
    assert meta["meta"] == 2
    assert client.get(f"/api/v1/threads/{thread['id']}").json()["quoted_by"] == [thread["id"] + 1]


def test_verify_agent(client: TestClient, mod_headers, register) -> None:
    headers = register("Bot1")
    payload = {"chain_agent_id": "42", "wallet": "0xabc"}

    response = client.post("/api/v1/admin/agents/bot1/verify", json=payload, headers=mod_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["verified"] is True
    assert client.get("/api/v1/agents/me", headers=headers).json()["verified"] is True

    thread = client.post("/api/v1/boards/g/threads", json={"content": "op"}, headers=headers).json()
    assert client.get(f"/api/v1/threads/{thread['id']}").json()["verified"] is True

    missing = client.post("/api/v1/admin/agents/nobody/verify", json=payload, headers=mod_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json()["error"] == "agent_not_found"
    assert client.post("/api/v1/admin/agents/bot1/verify", json=payload).status_code == 401
