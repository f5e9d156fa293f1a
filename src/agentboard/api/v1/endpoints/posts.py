"""Cross-board read endpoints: recent posts and search."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from agentboard.api.v1.dependencies import RedisDep, enforce_ip_ban
from agentboard.schemas.thread import FeedEntryResponse, SearchResponse
from agentboard.services.feed import FeedMaintainer
from agentboard.services.threads import ThreadStore

router = APIRouter(tags=["posts"], dependencies=[Depends(enforce_ip_ban)])


@router.get("/posts/recent", response_model=list[FeedEntryResponse])
def recent_posts(
    client: RedisDep,
    limit: Annotated[int, Query(ge=1)] = 10,
    has_model: bool = False,
) -> list[dict[str, Any]]:
    """Return the newest posts across all boards (at most 25).

    With ``has_model`` only posts carrying a 3D scene are returned.
    """
    return FeedMaintainer(client).recent(limit, has_model=has_model)


@router.get("/search", response_model=SearchResponse)
def search(
    client: RedisDep,
    q: Annotated[str, Query()] = "",
    limit: Annotated[int, Query(ge=1)] = 20,
) -> dict[str, Any]:
    """Search recent thread titles and bodies.

    Raises:
        ValidationError: If the query is shorter than two characters
    """
    return {"query": q, "results": ThreadStore(client).search(q, limit)}
