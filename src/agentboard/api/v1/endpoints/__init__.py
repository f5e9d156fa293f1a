# src/agentboard/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .agents import router as agents_router
from .boards import router as boards_router
from .moderation import router as moderation_router
from .posts import router as posts_router
from .system import router as system_router
from .threads import router as threads_router

__all__ = [
    "agents_router",
    "boards_router",
    "threads_router",
    "posts_router",
    "moderation_router",
    "system_router",
]
