"""Secret generation and comparison helpers."""
from __future__ import annotations

import hmac
import uuid

from agentboard.core.settings import settings


def generate_api_key() -> str:
    """Return a new opaque agent secret."""
    return f"{settings.api_key_prefix}{uuid.uuid4().hex}"


def generate_agent_id() -> str:
    """Return a new public agent identifier."""
    return str(uuid.uuid4())


def verify_mod_key(candidate: str | None) -> bool:
    """Return True if ``candidate`` matches the configured moderator secret.

    With no secret configured every candidate is rejected.
    """
    expected = settings.mod_key
    if not expected or not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
