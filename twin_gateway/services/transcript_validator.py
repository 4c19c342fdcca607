"""Validation of caller-supplied chat transcripts."""

import logging
from typing import Any, List, Optional

from twin_gateway.infra.config import config
from twin_gateway.infra.error_handler import TranscriptValidationError
from twin_gateway.infra.validation import sanitize_text
from twin_gateway.models.transcript import ConversationTurn, TurnRole, ValidatedTranscript

logger = logging.getLogger("twin_gateway.services.transcript")

# Provider-native and UI role names map onto the two transcript roles
ROLE_ALIASES = {
    "caller": TurnRole.CALLER,
    "user": TurnRole.CALLER,
    "assistant": TurnRole.ASSISTANT,
    "model": TurnRole.ASSISTANT,
    "bot": TurnRole.ASSISTANT,
}


def _entry_text(entry: dict) -> Optional[str]:
    """Text of one entry, from `text` or from provider-style `parts`."""
    if "text" in entry:
        text = entry["text"]
        return text if isinstance(text, str) else None

    parts = entry.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    if not texts:
        return None
    return "".join(texts)


def _parse_turn(index: int, entry: Any, max_chars: int) -> ConversationTurn:
    if not isinstance(entry, dict):
        raise TranscriptValidationError(f"history[{index}] must be an object with role and text.")

    raw_role = entry.get("role")
    role = ROLE_ALIASES.get(raw_role.strip().lower()) if isinstance(raw_role, str) else None
    if role is None:
        raise TranscriptValidationError(f"history[{index}] has an unrecognized role.")

    text = _entry_text(entry)
    if text is None or not text.strip():
        raise TranscriptValidationError(f"history[{index}] has empty text.")

    text = sanitize_text(text, max_chars)
    if not text.strip():
        raise TranscriptValidationError(f"history[{index}] has empty text.")

    return ConversationTurn(role=role, text=text)


def validate_transcript(
    history: Any,
    new_message: Any,
    max_turns: Optional[int] = None,
    max_chars: Optional[int] = None,
) -> ValidatedTranscript:
    """
    Validate caller history and the message to answer.

    Rules:
    - new_message must be a string that is non-empty after trimming
    - history may be missing (empty), otherwise a list of {role, text} or
      {role, parts: [{text}]} objects with a known role and non-empty text
    - only the newest `max_turns` history entries are kept; order is preserved
      and nothing is merged or deduplicated

    Args:
        history: Caller-supplied history (decoded JSON)
        new_message: Caller-supplied new message (decoded JSON)
        max_turns: History window size (default: config.MAX_HISTORY_TURNS)
        max_chars: Per-turn character cap (default: config.MAX_TURN_CHARS)

    Returns:
        ValidatedTranscript

    Raises:
        TranscriptValidationError: If any rule is violated
    """
    if max_turns is None:
        max_turns = config.MAX_HISTORY_TURNS
    if max_chars is None:
        max_chars = config.MAX_TURN_CHARS

    if not isinstance(new_message, str) or not new_message.strip():
        raise TranscriptValidationError("newMessage must be a non-empty string.")

    message = sanitize_text(new_message.strip(), max_chars)
    if not message.strip():
        raise TranscriptValidationError("newMessage must be a non-empty string.")

    if history is None:
        history = []
    if not isinstance(history, list):
        raise TranscriptValidationError("history must be a list of turns.")

    # Every entry is validated, including the ones the window will drop
    turns: List[ConversationTurn] = [
        _parse_turn(index, entry, max_chars) for index, entry in enumerate(history)
    ]

    dropped = max(0, len(turns) - max(0, max_turns))
    if dropped:
        turns = turns[dropped:]
        logger.debug("History window applied", extra={"dropped_turns": dropped})

    return ValidatedTranscript(history=turns, new_message=message, dropped_turns=dropped)
