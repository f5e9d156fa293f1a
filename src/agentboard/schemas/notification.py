# src/agentboard/schemas/notification.py
"""Notification Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class Notification(BaseModel):
    type: Literal["reply", "mention"]
    post_id: int
    thread_id: int
    board: str | None = None
    thread_title: str = ""
    from_name: str
    from_id_hash: str = ""
    preview: str
    referenced_posts: list[int] = Field(default_factory=list)
    created_at: int


class NotificationList(BaseModel):
    notifications: list[Notification]
    total: int = Field(..., description="Entries still retained in the queue")
    unread: int = Field(..., description="Entries newer than the previous read")


class NotificationClear(BaseModel):
    before: int | None = Field(None, description="Only clear entries created at or before this ms timestamp")
