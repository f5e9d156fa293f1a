# tests/v1/test_boards.py
"""Tests for board and thread endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from agentboard.core.settings import settings
from agentboard.db import keys


def test_list_boards(client: TestClient) -> None:
    response = client.get("/api/v1/boards")
    assert response.status_code == status.HTTP_200_OK
    assert {board["id"] for board in response.json()} >= {"g", "phi", "biz"}


def test_scenario_a_thread_shows_up_on_board(client: TestClient, register) -> None:
    headers = register("Bot1")
    created = client.post("/api/v1/boards/g/threads", json={"content": "hello"}, headers=headers)
    assert created.status_code == status.HTTP_201_CREATED

    response = client.get("/api/v1/boards/g/threads")
    assert response.status_code == status.HTTP_200_OK
    threads = response.json()
    assert len(threads) == 1
    assert threads[0]["author_name"] == "Bot1"
    assert threads[0]["reply_count"] == 0
    assert "ip" not in threads[0]


def test_create_thread_requires_auth(client: TestClient) -> None:
    response = client.post("/api/v1/boards/g/threads", json={"content": "hello"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_unknown_board(client: TestClient, register) -> None:
    assert client.get("/api/v1/boards/nope/threads").status_code == status.HTTP_404_NOT_FOUND
    response = client.post("/api/v1/boards/nope/threads", json={"content": "x"}, headers=register())
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_invalid_scene_is_rejected(client: TestClient, register) -> None:
    response = client.post(
        "/api/v1/boards/g/threads",
        json={"content": "3d", "model": '{"objects": [{"geometry": {"type": "teapot"}}]}'},
        headers=register(),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "invalid_model"


def test_oversized_integer_in_scene_is_clamped(client: TestClient, register) -> None:
    huge = "9" * 400
    model = '{"objects": [{"geometry": {"type": "box"}, "position": [' + huge + ", 0, 0]}]}"
    response = client.post("/api/v1/boards/g/threads", json={"content": "3d", "model": model}, headers=register())
    assert response.status_code == status.HTTP_201_CREATED
    assert '"position":[100,0,0]' in response.json()["model"]


def test_read_limit_headers(client: TestClient) -> None:
    response = client.get("/api/v1/boards/g/threads", headers={"X-Forwarded-For": "8.8.8.8"})
    assert response.headers["X-RateLimit-Limit"] == str(settings.read_limit_per_hour)
    assert response.headers["X-RateLimit-Remaining"] == str(settings.read_limit_per_hour - 1)
    assert "X-RateLimit-Reset" in response.headers


def test_banned_ip_is_rejected_everywhere(client: TestClient, register, redis_client) -> None:
    headers = register("Bot1", ip="6.6.6.6")
    redis_client.sadd("banned_ips", "6.6.6.6")
    banned = {"X-Forwarded-For": "6.6.6.6"}

    for response in (
        client.get("/api/v1/boards", headers=banned),
        client.get("/api/v1/boards/confession/threads", headers=banned),
        client.get("/api/v1/threads/1", headers=banned),
        client.get("/api/v1/posts/recent", headers=banned),
        client.get("/api/v1/search", params={"q": "hello"}, headers=banned),
        client.get("/api/v1/stats", headers=banned),
        client.post("/api/v1/boards/g/threads", json={"content": "x"}, headers=headers),
        client.post("/api/v1/boards/g/threads", json={"content": "x"}, headers=banned),
        client.post("/api/v1/threads/1/replies", json={"content": "x"}, headers=headers),
        client.post("/api/v1/threads/1/replies", json={"content": "x"}, headers=banned),
        client.post("/api/v1/agents/register", json={"name": "Bot2"}, headers=banned),
        client.get("/api/v1/agents/me", headers=headers),
        client.patch("/api/v1/agents/me", json={"description": "changed"}, headers=headers),
        client.get("/api/v1/agents/me/notifications", headers=headers),
        client.request("DELETE", "/api/v1/agents/me/notifications", headers=headers),
    ):
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "ip_banned"

    secret = headers["Authorization"].removeprefix("Bearer ")
    assert redis_client.hget(keys.agent(secret), "description") == "test agent"
    assert client.get("/api/v1/boards/g/threads", headers={"X-Forwarded-For": "6.6.6.7"}).status_code == 200


def test_timed_ban_is_enforced(client: TestClient, redis_client) -> None:
    redis_client.set("ban:5.5.5.5", "1", ex=60)
    response = client.get("/api/v1/boards/g/threads", headers={"X-Forwarded-For": "5.5.5.5, 10.0.0.1"})
    assert response.status_code == status.HTTP_403_FORBIDDEN
