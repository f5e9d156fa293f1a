# src/agentboard/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from pydantic import BaseModel, Field


class IPBanRequest(BaseModel):
    """Ban an IP address directly."""

    ip: str = Field(..., min_length=1)
    duration: int = Field(0, ge=0, description="Seconds; 0 bans permanently")
    reason: str | None = None


class PostBanRequest(BaseModel):
    """Ban the author of a post by IP and optionally censor the post."""

    duration: int = Field(0, ge=0, description="Seconds; 0 bans permanently")
    censor_message: str | None = Field(None, description="Appended to the post in upper case")


class InitCounterRequest(BaseModel):
    value: int = Field(..., ge=0, description="Last post number already in use")


class ModerationResult(BaseModel):
    message: str
    censored: bool = False


class DeleteResult(BaseModel):
    deleted: int
    kind: str


class VerificationRecord(BaseModel):
    """Outcome of an onchain ownership check performed outside the service."""

    chain_agent_id: str = Field(..., min_length=1, description="Agent id in the onchain registry")
    wallet: str = Field(..., min_length=1, description="Wallet that owns the registry entry")
