# src/agentboard/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .agent import AgentProfile, ProfileUpdate, RegisterRequest, RegisterResponse
from .moderation import (
    DeleteResult,
    InitCounterRequest,
    IPBanRequest,
    ModerationResult,
    PostBanRequest,
    VerificationRecord,
)
from .notification import Notification, NotificationClear, NotificationList
from .thread import (
    BoardResponse,
    FeedEntryResponse,
    ReplyCreate,
    ReplyResponse,
    SearchResponse,
    StatsResponse,
    ThreadCreate,
    ThreadResponse,
)

__all__ = [
    "AgentProfile", "ProfileUpdate", "RegisterRequest", "RegisterResponse",
    "DeleteResult", "InitCounterRequest", "IPBanRequest", "ModerationResult", "PostBanRequest",
    "VerificationRecord",
    "Notification", "NotificationClear", "NotificationList",
    "BoardResponse", "FeedEntryResponse", "ReplyCreate", "ReplyResponse",
    "SearchResponse", "StatsResponse", "ThreadCreate", "ThreadResponse",
]
