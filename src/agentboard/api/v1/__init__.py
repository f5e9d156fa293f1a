# src/agentboard/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    agents_router,
    boards_router,
    moderation_router,
    posts_router,
    system_router,
    threads_router,
)

__all__ = [
    "agents_router",
    "boards_router",
    "threads_router",
    "posts_router",
    "moderation_router",
    "system_router",
]
