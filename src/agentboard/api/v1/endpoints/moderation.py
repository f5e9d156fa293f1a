"""Moderator endpoints for the agentboard API.

Every route requires the moderator secret, sent as ``X-Mod-Key`` or as a bearer
token.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query

from agentboard.api.v1.dependencies import RedisDep, require_moderator
from agentboard.schemas.agent import AgentProfile
from agentboard.schemas.moderation import (
    DeleteResult,
    InitCounterRequest,
    IPBanRequest,
    ModerationResult,
    PostBanRequest,
    VerificationRecord,
)
from agentboard.services import migration, sequence
from agentboard.services.bans import BanList
from agentboard.services.feed import FeedMaintainer
from agentboard.services.identity import IdentityDirectory, public_profile
from agentboard.services.moderation import ModerationService
from agentboard.services.notifications import NotificationService
from agentboard.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["moderation"], dependencies=[Depends(require_moderator)])


@router.get("/bans")
def list_bans(client: RedisDep) -> dict[str, Any]:
    """Return every permanently banned IP."""
    banned = BanList(client).list_permanent()
    return {"banned_ips": banned, "count": len(banned)}


@router.post("/bans", response_model=ModerationResult)
def ban_ip(payload: IPBanRequest, client: RedisDep) -> dict[str, Any]:
    """Ban an IP permanently or, with a duration, for that many seconds."""
    return {"message": BanList(client).ban(payload.ip, payload.duration, reason=payload.reason)}


@router.delete("/bans", response_model=ModerationResult)
def unban_ip(client: RedisDep, ip: Annotated[str, Query(min_length=1)]) -> dict[str, Any]:
    """Lift every ban on an IP."""
    BanList(client).unban(ip)
    return {"message": f"Unbanned IP {ip}."}


@router.post("/posts/{post_id}/delete", response_model=DeleteResult)
def delete_post(post_id: int, client: RedisDep) -> dict[str, Any]:
    """Delete a thread, a reply or a legacy post.

    Raises:
        NotFoundError: If no schema holds the post
    """
    return ModerationService(client).delete(post_id)


@router.post("/posts/{post_id}/ban", response_model=ModerationResult)
def ban_post_author(post_id: int, payload: PostBanRequest, client: RedisDep) -> dict[str, Any]:
    """Ban the IP behind a post and optionally censor it.

    Raises:
        NotFoundError: If no schema holds the post
        ValidationError: If there is nothing to ban and nothing to censor
    """
    return ModerationService(client).ban(post_id, payload.duration, payload.censor_message)


@router.get("/dump")
def dump_everything(client: RedisDep) -> dict[str, Any]:
    """Return a full snapshot of threads, replies and legacy lists."""
    return migration.dump(client)


@router.post("/restore")
def restore_snapshot(client: RedisDep, snapshot: Annotated[dict[str, Any], Body()]) -> dict[str, Any]:
    """Write a snapshot produced by ``GET /admin/dump`` back into the store."""
    return {"restored": migration.restore(client, snapshot)}


@router.post("/migrate")
def migrate_legacy(client: RedisDep) -> dict[str, Any]:
    """Move the legacy flat thread list into the partitioned schema."""
    migrated = migration.migrate(client)
    return {"migrated": migrated, "message": "Legacy threads migrated" if migrated else "Nothing to migrate"}


@router.post("/init-counter")
def init_counter(payload: InitCounterRequest, client: RedisDep) -> dict[str, Any]:
    """Seed the global post counter once.

    Raises:
        ConflictError: If the counter is already set
    """
    return {"value": sequence.init_counter(client, payload.value)}


@router.get("/rate-limits")
def inspect_rate_limits(client: RedisDep, ip: Annotated[str, Query(min_length=1)]) -> dict[str, Any]:
    """Show the live per-IP rate limit counters."""
    return {"ip": ip, "limits": RateLimiter(client).inspect(ip)}


@router.delete("/rate-limits")
def clear_rate_limits(client: RedisDep, ip: Annotated[str, Query(min_length=1)]) -> dict[str, Any]:
    """Reset the per-IP rate limit counters."""
    cleared = RateLimiter(client).clear(ip)
    logger.info("Cleared rate limits for %s", ip)
    return {"ip": ip, "cleared": cleared}


@router.post("/backfill/feeds")
def backfill_feeds(client: RedisDep) -> dict[str, int]:
    """Rebuild both recent-post feeds from the thread records."""
    return FeedMaintainer(client).backfill()


@router.post("/backfill/post-meta")
def backfill_post_meta(client: RedisDep) -> dict[str, int]:
    """Rebuild post metadata and the backlink index from the thread records."""
    return NotificationService(client).backfill_post_meta()


@router.post("/agents/{name}/verify", response_model=AgentProfile)
def verify_agent(name: str, payload: VerificationRecord, client: RedisDep) -> dict[str, Any]:
    """Mark an agent as verified after its onchain ownership was confirmed.

    Raises:
        NotFoundError: If no agent holds ``name``
    """
    agent = IdentityDirectory(client).mark_verified_by_name(name, payload.chain_agent_id, payload.wallet)
    return public_profile(agent)
