"""API request/response models."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from twin_gateway.models.tenant import PersonaMode


# ============================================================================
# Chat Models
# ============================================================================

class ChatRequest(BaseModel):
    """
    Chat request body.

    Fields are loose: shape errors are reported by the transcript
    validator as a 400 with a readable reason.
    """
    history: Optional[Any] = Field(
        default=None,
        description="Previous turns, oldest first: [{role: 'caller'|'assistant', text}]",
    )
    newMessage: Optional[Any] = Field(default=None, description="Message to answer", example="What do you work on?")


class ChatResponse(BaseModel):
    """Successful chat reply."""
    response: str = Field(..., example="Ada works on analytical engines.")


class ErrorResponse(BaseModel):
    """Caller-safe error body."""
    error: str = Field(..., example="Bot not found")


# ============================================================================
# Bot Profile Models
# ============================================================================

class BotProfileResponse(BaseModel):
    """Public metadata for a bot page. Never includes the credential."""
    botId: str
    displayName: str
    bio: Optional[str] = None
    configured: bool


# ============================================================================
# Owner Models
# ============================================================================

class SaveCredentialRequest(BaseModel):
    """Owner request to validate and store a Gemini API key."""
    apiKey: Optional[str] = Field(default=None, description="Gemini API key")
    botId: Optional[str] = Field(default=None, description="Required only with the master key")


class SaveCredentialResponse(BaseModel):
    """Result of a successful credential save."""
    message: str = Field(..., example="API key saved and validated successfully!")


class SaveProfileRequest(BaseModel):
    """Owner request to replace the bot's persona."""
    botId: Optional[str] = Field(default=None, description="Required only with the master key")
    displayName: Optional[str] = Field(default=None, description="Omit to keep the current name")
    profile: Dict[str, Any] = Field(
        default_factory=dict,
        description="Persona fields: bio, skills, expertise, tone, opinions, linkedin, github, twitter, resumeLink",
    )
    personaMode: Optional[PersonaMode] = Field(default=None, description="Omit to keep the current mode")


class SaveProfileResponse(BaseModel):
    """Result of a successful profile save."""
    message: str = Field(..., example="Profile saved.")
