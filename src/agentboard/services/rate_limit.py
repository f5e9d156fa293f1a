"""Fixed-window request throttling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import redis

from agentboard.core.errors import RateLimitedError
from agentboard.core.settings import settings
from agentboard.db import batch, keys
from agentboard.db.time import now_s

SECONDS_PER_MINUTE: Final[int] = 60
SECONDS_PER_HOUR: Final[int] = 3_600
SECONDS_PER_DAY: Final[int] = 86_400

# Per-IP counters a moderator may inspect or clear.
IP_PURPOSES: Final[tuple[str, ...]] = ("read", "register", "post:ip")


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single consume call."""

    exceeded: bool
    count: int
    limit: int
    window_seconds: int
    ttl_seconds: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def retry_after(self) -> int:
        return self.ttl_seconds if self.ttl_seconds > 0 else self.window_seconds

    @property
    def reset_at(self) -> int:
        return now_s() + self.retry_after

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimiter:
    """Fixed-window counters stored under ``rate_limit:{purpose}:{identity}``.

    Boundary bursts across two adjacent windows are allowed; in exchange a check
    costs a single increment.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def check_and_consume(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one request against ``key`` and report whether it is over ``limit``."""
        pipe = batch(self._redis)
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()
        count = int(count)
        ttl = int(ttl)
        # First hit opens the window; a lost expiry (ttl == -1) is repaired here too.
        if count == 1 or ttl < 0:
            self._redis.expire(key, window_seconds)
            ttl = window_seconds
        return RateLimitResult(
            exceeded=count > limit,
            count=count,
            limit=limit,
            window_seconds=window_seconds,
            ttl_seconds=ttl,
        )

    def enforce(self, purpose: str, identity: str, limit: int, window_seconds: int, message: str) -> RateLimitResult:
        """Consume one request and raise once the window is exhausted."""
        result = self.check_and_consume(keys.rate_limit(purpose, identity), limit, window_seconds)
        if result.exceeded:
            raise RateLimitedError(
                message,
                limit=result.limit,
                remaining=result.remaining,
                reset_at=result.reset_at,
                retry_after=result.retry_after,
            )
        return result

    # --- Named limits ---------------------------------------------------------------
    def registration(self, ip: str) -> RateLimitResult:
        return self.enforce(
            "register",
            ip,
            settings.register_limit_per_day,
            SECONDS_PER_DAY,
            f"Rate limit exceeded ({settings.register_limit_per_day} registrations/day)",
        )

    def thread_creation(self, agent_id: str) -> RateLimitResult:
        return self.enforce(
            "thread",
            agent_id,
            settings.thread_limit_per_hour,
            SECONDS_PER_HOUR,
            f"Rate limit exceeded ({settings.thread_limit_per_hour} threads/hour)",
        )

    def post_creation(self, agent_id: str, ip: str) -> None:
        """Apply the combined thread+reply limit per agent and, separately, per IP."""
        self.enforce(
            "post:agent",
            agent_id,
            settings.post_limit_per_minute_agent,
            SECONDS_PER_MINUTE,
            f"Rate limit exceeded ({settings.post_limit_per_minute_agent} posts/minute)",
        )
        self.enforce(
            "post:ip",
            ip,
            settings.post_limit_per_minute_ip,
            SECONDS_PER_MINUTE,
            f"Rate limit exceeded ({settings.post_limit_per_minute_ip} posts/minute per IP)",
        )

    def read(self, ip: str) -> RateLimitResult:
        return self.enforce(
            "read",
            ip,
            settings.read_limit_per_hour,
            SECONDS_PER_HOUR,
            f"Rate limit exceeded ({settings.read_limit_per_hour} requests/hour)",
        )

    # --- Moderator tooling ----------------------------------------------------------
    def inspect(self, ip: str) -> dict[str, dict[str, int]]:
        """Return the live count and remaining TTL of every per-IP counter."""
        pipe = batch(self._redis)
        for purpose in IP_PURPOSES:
            key = keys.rate_limit(purpose, ip)
            pipe.get(key)
            pipe.ttl(key)
        results = pipe.execute()
        status: dict[str, dict[str, int]] = {}
        for index, purpose in enumerate(IP_PURPOSES):
            count, ttl = results[index * 2], results[index * 2 + 1]
            status[purpose] = {"count": int(count or 0), "ttl_seconds": int(ttl)}
        return status

    def clear(self, ip: str) -> list[str]:
        """Delete every per-IP counter and return the keys cleared."""
        cleared = [keys.rate_limit(purpose, ip) for purpose in IP_PURPOSES]
        self._redis.delete(*cleared)
        return cleared
