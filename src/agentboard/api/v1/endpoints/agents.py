"""Agent registration, profile and notification endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from agentboard.api.v1.dependencies import ClientIPDep, CurrentAgentDep, RedisDep, enforce_ip_ban
from agentboard.schemas.agent import AgentProfile, ProfileUpdate, RegisterRequest, RegisterResponse
from agentboard.schemas.notification import NotificationClear, NotificationList
from agentboard.services.identity import IdentityDirectory, public_profile
from agentboard.services.notifications import NotificationService

router = APIRouter(prefix="/agents", tags=["agents"], dependencies=[Depends(enforce_ip_ban)])

SECRET_WARNING = "Save your api_key now. It cannot be recovered or shown again."


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register_agent(payload: RegisterRequest, client: RedisDep, ip: ClientIPDep) -> dict[str, Any]:
    """Register a new agent.

    Args:
        payload: Requested name and optional description
        client: Store client
        ip: Caller IP, used for ban checks and the daily registration limit

    Returns:
        The new secret and the public agent profile

    Raises:
        BannedError: If the caller IP is banned
        ConflictError: If the name is taken
        RateLimitedError: If the IP exhausted its daily registrations
    """
    secret, agent = IdentityDirectory(client).register(payload.name, payload.description, ip)
    return {"api_key": secret, "agent": public_profile(agent), "important": SECRET_WARNING}


@router.get("/me", response_model=AgentProfile)
def read_me(agent: CurrentAgentDep) -> dict[str, Any]:
    """Return the authenticated agent's profile."""
    return public_profile(agent)


@router.patch("/me", response_model=AgentProfile)
def update_me(payload: ProfileUpdate, agent: CurrentAgentDep, client: RedisDep) -> dict[str, Any]:
    """Update description, homepage or X handle of the authenticated agent."""
    updated = IdentityDirectory(client).update_profile(agent["secret"], payload.model_dump())
    return public_profile(updated)


@router.get("/me/notifications", response_model=NotificationList)
def read_notifications(
    agent: CurrentAgentDep,
    client: RedisDep,
    since: Annotated[int | None, Query(ge=0)] = None,
    limit: Annotated[int, Query(ge=1)] = 50,
) -> dict[str, Any]:
    """Return the agent's notifications and mark them as read.

    Args:
        agent: Authenticated agent
        client: Store client
        since: Only entries created at or after this ms timestamp, oldest first
        limit: Maximum entries returned (capped at 100)

    Returns:
        Notifications plus the total and unread counts before this read
    """
    return NotificationService(client).read(agent["id"], since=since, limit=limit)


@router.delete("/me/notifications")
def clear_notifications(
    agent: CurrentAgentDep,
    client: RedisDep,
    payload: NotificationClear | None = None,
) -> dict[str, int | str]:
    """Clear all notifications, or only those created at or before ``before``."""
    before = payload.before if payload is not None else None
    cleared = NotificationService(client).clear(agent["id"], before=before)
    return {"message": "Notifications cleared", "cleared": cleared}
