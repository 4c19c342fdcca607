"""Input sanitization for caller text and public bot ids."""

import logging
import re

logger = logging.getLogger("twin_gateway.infra.validation")

# Public bot ids are opaque but restricted to URL-safe characters
PUBLIC_BOT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,127}$")

TRUNCATION_SUFFIX = "... [truncated]"

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]')


def detect_prompt_injection(content: str) -> list:
    """
    Detect prompt injection patterns in content.

    Args:
        content: Text to check

    Returns:
        List of detected pattern types (empty if none)
    """
    if not content:
        return []

    patterns = []
    content_lower = content.lower()

    meta_patterns = [
        r"ignore\s+(previous|all|the|your)\s+(instructions?|rules?|prompts?)",
        r"forget\s+(previous|all|the|your)\s+(instructions?|rules?|prompts?)",
        r"disregard\s+(previous|all|the|your)\s+(instructions?|rules?|prompts?)",
        r"override\s+(previous|all|the|your)\s+(instructions?|rules?|prompts?)",
    ]

    # Attempts to make the twin impersonate a human
    impersonation_patterns = [
        r"(say|claim|pretend)\s+(that\s+)?you\s+are\s+(a\s+)?(human|real\s+person)",
        r"you\s+are\s+not\s+an\s+ai",
        r"never\s+(say|admit)\s+(that\s+)?you\s+are\s+an\s+ai",
    ]

    disclosure_patterns = [
        r"(show|reveal|print)\s+(me\s+)?(your\s+)?(system\s+)?(prompt|instructions?|rules?)",
    ]

    all_patterns = [
        ("meta_instruction", meta_patterns),
        ("impersonation_attempt", impersonation_patterns),
        ("disclosure_attempt", disclosure_patterns),
    ]

    for pattern_type, pattern_list in all_patterns:
        for pattern in pattern_list:
            if re.search(pattern, content_lower):
                patterns.append(pattern_type)
                break  # Only report each type once

    return patterns


def sanitize_text(content: str, max_length: int = 10000) -> str:
    """
    Strip control characters and cap length.

    Injection patterns are logged for audit but never block content; containment
    happens in the compiled prompt.

    Args:
        content: Raw text
        max_length: Maximum length of the result

    Returns:
        Sanitized text
    """
    if not content:
        return ""

    injection_patterns = detect_prompt_injection(content)
    if injection_patterns:
        logger.warning(
            "Prompt injection patterns detected",
            extra={"patterns": injection_patterns, "content_length": len(content)},
        )

    # Keep newlines and tabs
    content = _CONTROL_CHARS.sub("", content)

    # Result never exceeds max_length, suffix included
    if len(content) > max_length:
        keep = max_length - len(TRUNCATION_SUFFIX)
        content = content[:keep] + TRUNCATION_SUFFIX if keep > 0 else content[:max_length]

    return content


def is_valid_public_bot_id(public_bot_id: str) -> bool:
    """Cheap shape check before touching the store."""
    if not public_bot_id:
        return False
    return bool(PUBLIC_BOT_ID_PATTERN.match(public_bot_id))
