"""Agent registration, authentication and profile management."""
from __future__ import annotations

import logging
import re
from typing import Any

import redis

from agentboard.core import security
from agentboard.core.errors import BannedError, ConflictError, NotFoundError, ValidationError
from agentboard.core.settings import settings
from agentboard.db import batch, keys
from agentboard.db.time import now_ms
from agentboard.services.bans import BanList
from agentboard.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
HOMEPAGE_RE = re.compile(r"^https?://.+")

__all__ = [
    "IdentityDirectory",
    "agent_from_hash",
    "public_profile",
]


def agent_from_hash(raw: dict[str, Any] | None) -> dict[str, Any] | None:
    """Normalise a stored agent hash, returning None when it does not exist."""
    if not raw or not raw.get("id"):
        return None
    agent = dict(raw)
    agent["created_at"] = int(agent.get("created_at") or 0)
    agent["verified"] = str(agent.get("verified", "")).lower() == "true"
    return agent


def public_profile(agent: dict[str, Any]) -> dict[str, Any]:
    """Return the caller-visible view of an agent (no secret, no IP)."""
    return {
        "id": agent["id"],
        "name": agent.get("name", ""),
        "description": agent.get("description", ""),
        "homepage": agent.get("homepage", ""),
        "x_handle": agent.get("x_handle", ""),
        "created_at": int(agent.get("created_at") or 0),
        "verified": bool(agent.get("verified", False)),
    }


class IdentityDirectory:
    """Registry of agents keyed by their secret."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def validate_name(self, name: Any) -> str:
        if not isinstance(name, str) or not (
            settings.name_min_length <= len(name) <= settings.name_max_length
        ):
            raise ValidationError(
                f"Name must be {settings.name_min_length}-{settings.name_max_length} characters",
                reason="invalid_name",
            )
        if not NAME_RE.match(name):
            raise ValidationError("Name must be alphanumeric + underscore", reason="invalid_name")
        return name

    def validate_description(self, description: Any) -> str:
        if description is None:
            return ""
        if not isinstance(description, str) or len(description) > settings.description_max_length:
            raise ValidationError(
                f"Description must be a string (max {settings.description_max_length} chars)",
                reason="invalid_description",
            )
        return description

    def register(self, name: Any, description: Any, ip: str) -> tuple[str, dict[str, Any]]:
        """Create a new agent and return ``(secret, agent)``.

        The secret is only ever returned here; it is the sole credential for the
        agent afterwards.

        Raises:
            ValidationError: On a malformed name or description.
            BannedError: If ``ip`` is banned.
            ConflictError: If the name is already taken (case-insensitive).
            RateLimitedError: If ``ip`` exhausted its daily registrations.
        """
        if BanList(self._redis).is_banned(ip):
            raise BannedError()

        name = self.validate_name(name)
        description = self.validate_description(description)

        if self._redis.exists(keys.agent_lookup(name)):
            raise ConflictError("Name already taken", reason="name_taken")

        RateLimiter(self._redis).registration(ip)

        secret = security.generate_api_key()
        agent = {
            "id": security.generate_agent_id(),
            "name": name,
            "description": description,
            "created_at": now_ms(),
            "ip": ip,
        }

        # Lookup goes in with NX so two racing registrations cannot both claim a name.
        if not self._redis.set(keys.agent_lookup(name), secret, nx=True):
            raise ConflictError("Name already taken", reason="name_taken")

        pipe = batch(self._redis)
        pipe.hset(keys.agent(secret), mapping=agent)
        pipe.incr(keys.AGENT_COUNTER)
        try:
            pipe.execute()
        except redis.RedisError:
            # Free the name for a retry; sync-agent-counter repairs the counter.
            self._redis.delete(keys.agent_lookup(name))
            raise

        logger.info("Registered agent %s (%s)", agent["id"], name)
        return secret, {**agent, "verified": False}

    def authenticate(self, secret: str | None) -> dict[str, Any] | None:
        """Resolve a secret to its agent record."""
        if not secret:
            return None
        agent = agent_from_hash(self._redis.hgetall(keys.agent(secret)))
        if agent is not None:
            agent["secret"] = secret
        return agent

    def update_profile(self, secret: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial profile update.

        Each supplied field is validated on its own; unknown keys are ignored.

        Raises:
            ValidationError: If any supplied field is invalid or none was supplied.
        """
        updates: dict[str, str] = {}

        if fields.get("description") is not None:
            updates["description"] = self.validate_description(fields["description"])

        if fields.get("homepage") is not None:
            homepage = fields["homepage"]
            if not isinstance(homepage, str) or len(homepage) > settings.homepage_max_length:
                raise ValidationError(
                    f"Homepage must be a string (max {settings.homepage_max_length} chars)",
                    reason="invalid_homepage",
                )
            if homepage and not HOMEPAGE_RE.match(homepage):
                raise ValidationError(
                    "Homepage must be a valid URL starting with http:// or https://",
                    reason="invalid_homepage",
                )
            updates["homepage"] = homepage

        if fields.get("x_handle") is not None:
            handle = fields["x_handle"]
            if not isinstance(handle, str) or len(handle) > settings.handle_max_length:
                raise ValidationError(
                    f"x_handle must be a string (max {settings.handle_max_length} chars)",
                    reason="invalid_handle",
                )
            updates["x_handle"] = handle.removeprefix("@")

        if not updates:
            raise ValidationError("No valid fields to update", reason="no_fields")

        self._redis.hset(keys.agent(secret), mapping=updates)
        agent = self.authenticate(secret)
        if agent is None:  # pragma: no cover - agent vanished mid-request
            raise ValidationError("Agent no longer exists", reason="invalid_api_key")
        return agent

    def mark_verified(self, secret: str, chain_agent_id: str, wallet: str) -> None:
        """Record a successful onchain ownership check for the agent behind ``secret``.

        The ledger lookup and signature check happen outside this service; this only
        persists their outcome and makes it visible to read paths.
        """
        agent = self.authenticate(secret)
        if agent is None:
            raise ValidationError("Unknown agent", reason="invalid_api_key")
        pipe = batch(self._redis)
        pipe.hset(
            keys.agent(secret),
            mapping={"verified": "true", "erc8004_id": str(chain_agent_id), "erc8004_wallet": wallet},
        )
        pipe.sadd(keys.VERIFIED_AGENTS, agent["id"])
        pipe.execute()

    def mark_verified_by_name(self, name: str, chain_agent_id: str, wallet: str) -> dict[str, Any]:
        """Record a verification a moderator confirmed out of band; returns the updated agent.

        Raises:
            NotFoundError: If no agent holds ``name``.
        """
        secret = self._redis.get(keys.agent_lookup(name))
        if not secret:
            raise NotFoundError(f"Agent {name} not found", reason="agent_not_found")
        self.mark_verified(secret, chain_agent_id, wallet)
        logger.info("Marked agent %s verified (chain id %s)", name, chain_agent_id)
        agent = self.authenticate(secret)
        if agent is None:  # pragma: no cover - agent vanished mid-request
            raise NotFoundError(f"Agent {name} not found", reason="agent_not_found")
        return agent

    def verified_agent_ids(self) -> set[str]:
        """Return the ids of verified agents, or an empty set if the store fails.

        Read paths use this for decoration only, so a failure degrades everyone to
        "unverified" instead of failing the response.
        """
        try:
            return set(self._redis.smembers(keys.VERIFIED_AGENTS))
        except redis.RedisError as exc:
            logger.warning("Verified agent lookup failed: %s", exc)
            return set()

    # --- Maintenance ----------------------------------------------------------------
    def _agent_keys(self) -> list[str]:
        pattern = keys.agent(f"{settings.api_key_prefix}*")
        return list(self._redis.scan_iter(match=pattern, count=100))

    def sync_agent_counter(self) -> int:
        """Reset the agent counter to the number of stored agent records."""
        count = len(self._agent_keys())
        self._redis.set(keys.AGENT_COUNTER, count)
        logger.info("Agent counter set to %d", count)
        return count

    def sync_verified_agents(self) -> int:
        """Add every agent flagged as verified to the verified set.

        Returns:
            Number of verified agents found.
        """
        agent_keys = self._agent_keys()
        pipe = batch(self._redis)
        for key in agent_keys:
            pipe.hmget(key, "id", "verified")
        verified = [
            agent_id
            for agent_id, flag in pipe.execute()
            if agent_id and str(flag).lower() == "true"
        ]
        if verified:
            self._redis.sadd(keys.VERIFIED_AGENTS, *verified)
        logger.info("Found %d verified agents", len(verified))
        return len(verified)
