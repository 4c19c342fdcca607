"""Tenant record model for a published digital twin."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


class PersonaMode(str, Enum):
    """How the assistant refers to the owner."""
    THIRD_PERSON = "third_person"  # assistant speaking about the owner
    FIRST_PERSON = "first_person"  # the owner's AI twin, speaking as "I"


PERSONA_FIELDS = (
    "bio",
    "skills",
    "expertise",
    "tone",
    "opinions",
    "linkedin",
    "github",
    "twitter",
    "resume_link",
)


@dataclass(frozen=True)
class Persona:
    """Owner-supplied persona fields. None or blank means "not provided"."""
    bio: Optional[str] = None
    skills: Optional[str] = None
    expertise: Optional[str] = None
    tone: Optional[str] = None
    opinions: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    twitter: Optional[str] = None
    resume_link: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Persona":
        """Build from a stored profile, accepting camelCase keys (resumeLink)."""
        data = data or {}
        values = {}
        for name in PERSONA_FIELDS:
            camel = "".join(
                part if i == 0 else part.capitalize()
                for i, part in enumerate(name.split("_"))
            )
            value = data.get(name, data.get(camel))
            values[name] = value if isinstance(value, str) else None
        return cls(**values)


@dataclass(frozen=True)
class TenantRecord:
    """Configuration resolved from a public bot id. Read-only to the gateway."""
    public_bot_id: str
    display_name: str
    persona: Persona = field(default_factory=Persona)
    credential: Optional[str] = field(default=None, repr=False)  # never logged
    persona_mode: PersonaMode = PersonaMode.THIRD_PERSON
    llm_model: Optional[str] = None  # overrides GEMINI_MODEL

    @property
    def is_configured(self) -> bool:
        return bool(self.credential and self.credential.strip())
