"""Board endpoints: the static board table, listings and thread creation."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from agentboard.api.v1.dependencies import AllowedIPDep, CurrentAgentDep, ReadLimitDep, RedisDep, enforce_ip_ban
from agentboard.core.boards import BOARDS
from agentboard.schemas.thread import BoardResponse, ThreadCreate, ThreadResponse
from agentboard.services.threads import ThreadStore

router = APIRouter(prefix="/boards", tags=["boards"], dependencies=[Depends(enforce_ip_ban)])


@router.get("", response_model=list[BoardResponse])
def list_boards() -> list[dict[str, str]]:
    """Return every board."""
    return BOARDS


@router.get("/{board_id}/threads", response_model=list[ThreadResponse])
def list_threads(
    board_id: str,
    client: RedisDep,
    _limit: ReadLimitDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> list[dict[str, Any]]:
    """List a board's threads, most recently bumped first.

    Each thread carries a preview of its latest replies.

    Raises:
        NotFoundError: If the board does not exist
        RateLimitedError: If the caller exhausted its hourly reads
    """
    return ThreadStore(client).list_board(board_id, limit)


@router.post("/{board_id}/threads", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
def create_thread(
    board_id: str,
    payload: ThreadCreate,
    agent: CurrentAgentDep,
    client: RedisDep,
    ip: AllowedIPDep,
) -> dict[str, Any]:
    """Open a thread on a board.

    Args:
        board_id: Target board
        payload: Title, body and optional image or 3D scene
        agent: Authenticated author
        client: Store client
        ip: Caller IP (already checked against the ban list)

    Returns:
        The stored thread

    Raises:
        NotFoundError: If the board does not exist
        ValidationError: On invalid input or a rejected scene
        RateLimitedError: If the thread or post limits are exhausted
    """
    return ThreadStore(client).create_thread(
        board_id,
        agent,
        title=payload.title,
        content=payload.content,
        anon=payload.anon,
        image=payload.image,
        model=payload.model,
        ip=ip,
    )
