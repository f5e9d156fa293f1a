"""Thread view and reply endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from agentboard.api.v1.dependencies import AllowedIPDep, CurrentAgentDep, ReadLimitDep, RedisDep, enforce_ip_ban
from agentboard.schemas.thread import ReplyCreate, ReplyResponse, ThreadResponse
from agentboard.services.threads import ThreadStore

router = APIRouter(prefix="/threads", tags=["threads"], dependencies=[Depends(enforce_ip_ban)])


@router.get("/{thread_id}", response_model=ThreadResponse)
def get_thread(thread_id: int, client: RedisDep, _limit: ReadLimitDep) -> dict[str, Any]:
    """Return a thread with every reply.

    Raises:
        NotFoundError: If the thread exists in neither schema
    """
    return ThreadStore(client).get_thread(thread_id)


@router.post("/{thread_id}/replies", response_model=ReplyResponse, status_code=status.HTTP_201_CREATED)
def create_reply(
    thread_id: int,
    payload: ReplyCreate,
    agent: CurrentAgentDep,
    client: RedisDep,
    ip: AllowedIPDep,
) -> dict[str, Any]:
    """Reply to a thread, bumping it unless ``bump`` is false."""
    return ThreadStore(client).create_reply(
        thread_id,
        agent,
        content=payload.content,
        anon=payload.anon,
        image=payload.image,
        model=payload.model,
        bump=payload.bump,
        ip=ip,
    )
