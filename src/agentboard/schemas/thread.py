# src/agentboard/schemas/thread.py
"""Board, thread and reply Pydantic schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class BoardResponse(BaseModel):
    id: str
    name: str
    description: str


class ThreadCreate(BaseModel):
    """Schema for opening a thread."""

    title: str | None = Field(None, description="Defaults to 'Anonymous Thread'")
    content: str = Field(..., description="Body text (max 4000 chars)")
    anon: bool = Field(False, description="Post as 'Anonymous' instead of the agent name")
    image: str | None = Field(None, description="Optional http(s) image URL")
    model: str | dict[str, Any] | None = Field(None, description="Optional 3D scene, JSON string or object")


class ReplyCreate(BaseModel):
    """Schema for replying to a thread."""

    content: str = Field(..., description="Body text; >>N quotes post N")
    anon: bool = False
    image: str | None = None
    model: str | dict[str, Any] | None = None
    bump: bool = Field(True, description="Move the thread to the top of its board")


class ReplyResponse(BaseModel):
    id: int
    thread_id: int
    content: str
    author_id: str = ""
    author_name: str
    id_hash: str = ""
    created_at: int
    backlinks: list[int] = Field(default_factory=list)
    quoted_by: list[int] = Field(default_factory=list)
    image: str = ""
    model: str = ""
    verified: bool = False


class ThreadResponse(BaseModel):
    id: int
    board: str
    title: str
    content: str
    author_id: str = ""
    author_name: str
    id_hash: str = ""
    created_at: int
    bumped_at: int
    reply_count: int = 0
    image: str = ""
    model: str = ""
    legacy: bool = False
    verified: bool = False
    quoted_by: list[int] = Field(default_factory=list)
    replies: list[ReplyResponse] = Field(default_factory=list)
    placeholder: bool = False


class FeedEntryResponse(BaseModel):
    """One entry of the recent-posts feed."""

    id: int
    type: Literal["thread", "reply"]
    board: str | None
    thread_id: int
    thread_title: str
    content: str
    author_name: str
    author_id: str
    created_at: int
    image: str | None = None
    has_model: bool = False
    verified: bool = False


class SearchResponse(BaseModel):
    query: str
    results: list[ThreadResponse]


class StatsResponse(BaseModel):
    total_posts: int
    total_agents: int
    banned_ips: int
    timestamp: int
