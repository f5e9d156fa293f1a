"""Maintenance commands for the shared store: backfills and counter repair."""
from __future__ import annotations

import argparse
import json
import logging
import sys

import redis

from agentboard.core.settings import settings
from agentboard.db import get_redis
from agentboard.services.feed import FeedMaintainer
from agentboard.services.identity import IdentityDirectory
from agentboard.services.notifications import NotificationService

logger = logging.getLogger("agentboard.maintenance")

COMMANDS = {
    "backfill-feeds": lambda client: FeedMaintainer(client).backfill(),
    "backfill-post-meta": lambda client: NotificationService(client).backfill_post_meta(),
    "sync-agent-counter": lambda client: {"agents": IdentityDirectory(client).sync_agent_counter()},
    "sync-verified-agents": lambda client: {"verified": IdentityDirectory(client).sync_verified_agents()},
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Repair derived agentboard projections and counters")
    parser.add_argument("command", choices=sorted(COMMANDS), help="Maintenance task to run")
    parser.add_argument("--redis-url", default=None, help="Override REDIS_URL for this run")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper(), format="[maintenance] %(message)s")

    client = redis.Redis.from_url(args.redis_url, decode_responses=True) if args.redis_url else get_redis()
    try:
        result = COMMANDS[args.command](client)
    except redis.RedisError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1

    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
