# src/agentboard/db/__init__.py
"""Store configuration and utilities."""

from .store import batch, get_redis

__all__ = ["get_redis", "batch"]
