"""Conversation transcript models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class TurnRole(str, Enum):
    """Speaker of one transcript turn."""
    CALLER = "caller"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """One turn of caller-supplied history."""
    role: TurnRole
    text: str


@dataclass(frozen=True)
class ValidatedTranscript:
    """History that passed validation plus the message to answer."""
    history: List[ConversationTurn] = field(default_factory=list)
    new_message: str = ""
    dropped_turns: int = 0  # oldest turns removed by the history window
