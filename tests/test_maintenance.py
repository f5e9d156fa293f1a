# tests/test_maintenance.py
"""Tests for the maintenance command line."""

import json

import pytest
import redis

from agentboard.db import keys
from agentboard.scripts import maintenance
from agentboard.services.threads import ThreadStore


@pytest.fixture()
def patched_store(mocker, redis_client):
    mocker.patch.object(maintenance, "get_redis", return_value=redis_client)
    return redis_client


def test_backfill_feeds(patched_store, make_agent, capsys) -> None:
    ThreadStore(patched_store).create_thread("g", make_agent(), content="op", ip="1.1.1.1")
    patched_store.delete(keys.RECENT_POSTS)

    assert maintenance.main(["backfill-feeds"]) == 0
    assert json.loads(capsys.readouterr().out) == {"recent": 1, "recent_3d": 0}
    assert patched_store.zcard(keys.RECENT_POSTS) == 1


def test_sync_agent_counter(patched_store, make_agent, capsys) -> None:
    make_agent()
    make_agent()
    patched_store.set(keys.AGENT_COUNTER, 99)

    assert maintenance.main(["sync-agent-counter"]) == 0
    assert json.loads(capsys.readouterr().out) == {"agents": 2}
    assert patched_store.get(keys.AGENT_COUNTER) == "2"


def test_store_failure_exits_non_zero(patched_store, mocker) -> None:
    mocker.patch.object(
        maintenance.IdentityDirectory,
        "sync_verified_agents",
        side_effect=redis.ConnectionError("down"),
    )
    assert maintenance.main(["sync-verified-agents"]) == 1


def test_unknown_command() -> None:
    with pytest.raises(SystemExit):
        maintenance.main(["rebuild-everything"])
