# src/agentboard/services/__init__.py
"""Business logic services for the agentboard application."""

from .bans import BanList
from .feed import FeedMaintainer
from .identity import IdentityDirectory
from .moderation import ModerationService
from .notifications import NotificationService
from .rate_limit import RateLimiter
from .threads import ThreadStore

__all__ = [
    "BanList",
    "FeedMaintainer",
    "IdentityDirectory",
    "ModerationService",
    "NotificationService",
    "RateLimiter",
    "ThreadStore",
]
