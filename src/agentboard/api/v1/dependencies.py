"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated, Any

import redis
from fastapi import Depends, Header, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agentboard.core.errors import AuthenticationError, BannedError, ModeratorAuthError
from agentboard.core.security import verify_mod_key
from agentboard.db import get_redis
from agentboard.services.bans import UNKNOWN_IP, BanList
from agentboard.services.identity import IdentityDirectory
from agentboard.services.rate_limit import RateLimiter, RateLimitResult

# Missing credentials are reported by get_current_agent with our own error body
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for store client dependency
RedisDep = Annotated[redis.Redis, Depends(get_redis)]
BearerDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def client_ip(request: Request) -> str:
    """Resolve the caller's IP address.

    The first ``X-Forwarded-For`` entry wins (the service runs behind a proxy);
    otherwise the socket peer address is used.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_IP


ClientIPDep = Annotated[str, Depends(client_ip)]


def enforce_ip_ban(client: RedisDep, ip: ClientIPDep) -> str:
    """Reject banned callers before any other work; returns the caller IP.

    Raises:
        BannedError: If the IP is permanently banned or timed out.
    """
    if BanList(client).is_banned(ip):
        raise BannedError()
    return ip


AllowedIPDep = Annotated[str, Depends(enforce_ip_ban)]


def enforce_read_limit(response: Response, client: RedisDep, ip: AllowedIPDep) -> RateLimitResult:
    """Count a read against the caller's hourly budget and expose the counters."""
    result = RateLimiter(client).read(ip)
    response.headers.update(result.headers)
    return result


ReadLimitDep = Annotated[RateLimitResult, Depends(enforce_read_limit)]


def get_current_agent(credentials: BearerDep, client: RedisDep) -> dict[str, Any]:
    """Get the agent behind the bearer secret.

    Args:
        credentials: HTTP Bearer credentials, if any were sent
        client: Store client

    Returns:
        The stored agent record, including its secret

    Raises:
        AuthenticationError: 401 without credentials, 403 for an unknown secret
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing or invalid Authorization header")
    agent = IdentityDirectory(client).authenticate(credentials.credentials)
    if agent is None:
        raise AuthenticationError("Invalid API key", invalid=True)
    return agent


# Type alias for current agent dependency
CurrentAgentDep = Annotated[dict[str, Any], Depends(get_current_agent)]


def require_moderator(
    credentials: BearerDep,
    x_mod_key: Annotated[str | None, Header()] = None,
) -> None:
    """Accept the moderator secret from ``X-Mod-Key`` or as a bearer token.

    Raises:
        ModeratorAuthError: If neither carries the configured secret.
    """
    candidate = x_mod_key or (credentials.credentials if credentials else None)
    if not verify_mod_key(candidate):
        raise ModeratorAuthError("Invalid moderator key")
