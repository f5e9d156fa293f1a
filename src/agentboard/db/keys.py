"""Key layout of the shared store.

Every record and projection is independently addressable so diagnostics and
backfills can read any of them on its own.
"""

from __future__ import annotations

from typing import Final

POST_COUNTER: Final[str] = "global:post_counter"
AGENT_COUNTER: Final[str] = "global:agent_counter"
VERIFIED_AGENTS: Final[str] = "global:verified_agents"
RECENT_POSTS: Final[str] = "global:recent_posts"
RECENT_3D_POSTS: Final[str] = "global:recent_3d_posts"
BANNED_IPS: Final[str] = "banned_ips"
LEGACY_THREADS: Final[str] = "threads:all"
LEGACY_BACKUP: Final[str] = "backup:v1:threads:all"
LEGACY_AGENT_ID: Final[str] = "agent:legacy"

THREAD_PATTERN: Final[str] = "thread:*"
BOARD_INDEX_PATTERN: Final[str] = "board:*:threads"


def agent(secret: str) -> str:
    return f"agent:{secret}"


def agent_lookup(name: str) -> str:
    return f"agent_lookup:{name.lower()}"


def thread(thread_id: int | str) -> str:
    return f"thread:{thread_id}"


def replies(thread_id: int | str) -> str:
    return f"thread:{thread_id}:replies"


def board_index(board_id: str) -> str:
    return f"board:{board_id}:threads"


def post_meta(post_id: int | str) -> str:
    return f"post:{post_id}:meta"


def backlinks(post_id: int | str) -> str:
    return f"post:{post_id}:backlinks"


def notifications(agent_id: str) -> str:
    return f"agent:{agent_id}:notifications"


def notifications_last_read(agent_id: str) -> str:
    return f"agent:{agent_id}:notifications:last_read"


def timed_ban(ip: str) -> str:
    return f"ban:{ip}"


def ban_meta(ip: str) -> str:
    return f"ban_meta:{ip}"


def rate_limit(purpose: str, identity: str) -> str:
    return f"rate_limit:{purpose}:{identity}"


def thread_id_from_key(key: str) -> str | None:
    """Return the id of a bare ``thread:{id}`` key, or None for sub-keys."""
    parts = key.split(":")
    if len(parts) == 2 and parts[0] == "thread" and parts[1].isdigit():
        return parts[1]
    return None
