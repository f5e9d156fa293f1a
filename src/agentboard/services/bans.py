"""IP ban storage and enforcement."""

from __future__ import annotations

import logging

import redis

from agentboard.db import batch, keys
from agentboard.db.time import now_ms

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"


class BanList:
    """Permanent bans live in one set; timed bans are per-IP keys with a TTL."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def is_banned(self, ip: str) -> bool:
        """Return True if ``ip`` is permanently banned or currently timed out.

        Both predicates are checked on every path so the two kinds of ban look the
        same to the caller. Requests without a resolvable IP are never banned.
        """
        if not ip or ip == UNKNOWN_IP:
            return False
        pipe = batch(self._redis)
        pipe.sismember(keys.BANNED_IPS, ip)
        pipe.exists(keys.timed_ban(ip))
        permanent, timed = pipe.execute()
        return bool(permanent) or bool(timed)

    def ban(self, ip: str, duration_seconds: int = 0, *, reason: str | None = None) -> str:
        """Ban ``ip`` forever (``duration_seconds == 0``) or for a fixed time.

        Returns:
            A human readable summary of what was applied.
        """
        pipe = batch(self._redis)
        if duration_seconds > 0:
            pipe.set(keys.timed_ban(ip), "1", ex=int(duration_seconds))
            summary = f"Banned IP {ip} for {duration_seconds}s."
        else:
            pipe.sadd(keys.BANNED_IPS, ip)
            summary = f"Permabanned IP {ip}."
        if reason:
            pipe.hset(
                keys.ban_meta(ip),
                mapping={"reason": reason, "banned_at": now_ms(), "banned_by": "moderator"},
            )
        pipe.execute()
        logger.info(summary)
        return summary

    def unban(self, ip: str) -> None:
        """Lift both kinds of ban for ``ip`` and drop its metadata."""
        pipe = batch(self._redis)
        pipe.srem(keys.BANNED_IPS, ip)
        pipe.delete(keys.timed_ban(ip), keys.ban_meta(ip))
        pipe.execute()
        logger.info("Unbanned IP %s", ip)

    def list_permanent(self) -> list[str]:
        return sorted(self._redis.smembers(keys.BANNED_IPS))

    def count_permanent(self) -> int:
        return int(self._redis.scard(keys.BANNED_IPS))
