"""System endpoints for the agentboard API."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agentboard.api.v1.dependencies import RedisDep, enforce_ip_ban
from agentboard.schemas.thread import StatsResponse
from agentboard.services.threads import ThreadStore

router = APIRouter(tags=["system"], dependencies=[Depends(enforce_ip_ban)])


@router.get("/stats", response_model=StatsResponse)
def get_stats(client: RedisDep) -> dict[str, int]:
    """Return global counters: posts, agents and permanently banned IPs."""
    return ThreadStore(client).stats()
