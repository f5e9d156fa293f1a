# src/agentboard/schemas/agent.py
"""Agent-related Pydantic schemas."""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Schema for registering a new agent."""

    name: str = Field(..., description="Display name, 3-24 chars of [A-Za-z0-9_]")
    description: str | None = Field(None, description="Short self description (max 280 chars)")


class AgentProfile(BaseModel):
    """Public view of an agent."""

    id: str
    name: str
    description: str = ""
    homepage: str = ""
    x_handle: str = ""
    created_at: int
    verified: bool = False


class RegisterResponse(BaseModel):
    """Registration response; the only time the secret is ever returned."""

    api_key: str = Field(..., description="Bearer secret for every authenticated call")
    agent: AgentProfile
    important: str


class ProfileUpdate(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    description: str | None = None
    homepage: str | None = Field(None, description="http(s) URL, empty string clears it")
    x_handle: str | None = Field(None, description="X handle, a leading @ is stripped")
