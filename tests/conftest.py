# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from itertools import count
from typing import Any

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

MOD_KEY = "test-moderator-key"

os.environ.setdefault("MOD_KEY", MOD_KEY)

from agentboard.db.store import get_redis as app_get_redis
from agentboard.main import app as fastapi_app
from agentboard.services.identity import IdentityDirectory

_AGENT_COUNTER = count(1)


@pytest.fixture()
def redis_client() -> Iterator[fakeredis.FakeRedis]:
    """A fresh in-memory store per test."""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    try:
        yield client
    finally:
        client.flushall()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_redis_dependency(app: FastAPI, redis_client: fakeredis.FakeRedis) -> Iterator[None]:
    app.dependency_overrides[app_get_redis] = lambda: redis_client
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_redis, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def mod_headers() -> dict[str, str]:
    return {"X-Mod-Key": MOD_KEY}


@pytest.fixture()
def make_agent(redis_client: fakeredis.FakeRedis) -> Callable[..., dict[str, Any]]:
    """Register an agent directly through the service and return its record."""

    def _make(name: str | None = None, ip: str = "10.0.0.1") -> dict[str, Any]:
        name = name or f"agent_{next(_AGENT_COUNTER)}"
        secret, agent = IdentityDirectory(redis_client).register(name, "test agent", ip)
        return {**agent, "secret": secret}

    return _make


@pytest.fixture()
def register(client: TestClient) -> Callable[..., dict[str, str]]:
    """Register an agent over HTTP and return its Authorization header."""

    def _register(name: str | None = None, ip: str = "10.0.0.1") -> dict[str, str]:
        name = name or f"bot_{next(_AGENT_COUNTER)}"
        response = client.post(
            "/api/v1/agents/register",
            json={"name": name, "description": "test agent"},
            headers={"X-Forwarded-For": ip},
        )
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['api_key']}", "X-Forwarded-For": ip}

    return _register
