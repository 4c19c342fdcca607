"""Gateway error taxonomy and translation of raw store/provider failures."""

import asyncio
from typing import Optional, Callable, List, Tuple
from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of caller-visible failure kinds."""
    NOT_FOUND = "NotFound"
    NOT_CONFIGURED = "NotConfigured"
    INVALID_CREDENTIAL = "InvalidCredential"
    QUOTA_EXCEEDED = "QuotaExceeded"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"
    BAD_REQUEST = "BadRequest"
    INTERNAL = "Internal"


# Caller-safe messages
MSG_NOT_FOUND = "Bot not found"
MSG_NOT_CONFIGURED = "Bot is not configured by its owner."
MSG_INVALID_CREDENTIAL = "The bot's API key is invalid or has expired."
MSG_QUOTA_EXCEEDED = "This bot has exceeded its API quota."
MSG_MODEL_NOT_FOUND = "Model not found. Please check API settings."
MSG_PROVIDER_DOWN = "The AI provider is currently unavailable. Please try again later."
MSG_INTERNAL = "Internal Server Error"


class GatewayError(Exception):
    """Terminal, caller-safe failure of one chat request."""

    def __init__(self, kind: ErrorKind, http_status: int, message: str, state: Optional[str] = None):
        self.kind = kind
        self.http_status = http_status
        self.message = message
        # Orchestrator state in which the failure happened
        self.state = state
        super().__init__(message)

    def to_body(self) -> dict:
        return {"error": self.message}


# ============================================================================
# Raw errors, raised at their origin and translated before leaving the gateway
# ============================================================================

class TenantNotFoundError(Exception):
    """No tenant is registered under the public bot id."""
    def __init__(self, public_bot_id: str):
        self.public_bot_id = public_bot_id
        super().__init__(f"Tenant {public_bot_id} not found")


class TenantNotConfiguredError(Exception):
    """Tenant exists but has no LLM credential."""
    def __init__(self, public_bot_id: str):
        self.public_bot_id = public_bot_id
        super().__init__(f"Tenant {public_bot_id} has no credential")


class TranscriptValidationError(ValueError):
    """Caller-supplied transcript or message is unusable."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ProviderError(Exception):
    """Error response returned by the LLM provider."""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code  # HTTP code
        self.status = status  # e.g. "INVALID_ARGUMENT", "RESOURCE_EXHAUSTED"
        self.reason = reason  # ErrorInfo.reason, e.g. "API_KEY_INVALID"
        super().__init__(message)


class ProviderUnavailableError(Exception):
    """Provider could not be reached or did not answer in time."""
    pass


# ============================================================================
# Classification
# ============================================================================

INVALID_KEY_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED", "API_KEY_SERVICE_BLOCKED"}
INVALID_KEY_PHRASES = ("api key not valid", "api key expired", "api_key_invalid", "invalid api key")
QUOTA_PHRASES = ("quota", "rate limit", "resource has been exhausted", "resource_exhausted")
MODEL_NOT_FOUND_PHRASES = ("is not found for api version", "model not found", "not supported for generatecontent")


def _message_of(error: Exception) -> str:
    return (getattr(error, "message", None) or str(error)).lower()


def is_invalid_credential(error: Exception) -> bool:
    if not isinstance(error, ProviderError):
        return False
    if error.reason in INVALID_KEY_REASONS:
        return True
    if error.status_code in (401, 403) or error.status in ("UNAUTHENTICATED", "PERMISSION_DENIED"):
        return True
    if error.reason:
        # Structured reason present and it is not a key problem
        return False
    return any(phrase in _message_of(error) for phrase in INVALID_KEY_PHRASES)


def is_quota_exceeded(error: Exception) -> bool:
    if not isinstance(error, ProviderError):
        return False
    if error.status_code == 429 or error.status == "RESOURCE_EXHAUSTED":
        return True
    return any(phrase in _message_of(error) for phrase in QUOTA_PHRASES)


def is_model_not_found(error: Exception) -> bool:
    if not isinstance(error, ProviderError):
        return False
    if error.status_code == 404 or error.status == "NOT_FOUND":
        return True
    return any(phrase in _message_of(error) for phrase in MODEL_NOT_FOUND_PHRASES)


def is_provider_unreachable(error: Exception) -> bool:
    return isinstance(error, (ProviderUnavailableError, asyncio.TimeoutError))


# Rules in priority order: (predicate, factory)
_RULES: List[Tuple[Callable[[Exception], bool], Callable[[Exception], GatewayError]]] = [
    (
        lambda e: isinstance(e, TenantNotFoundError),
        lambda e: GatewayError(ErrorKind.NOT_FOUND, 404, MSG_NOT_FOUND),
    ),
    (
        lambda e: isinstance(e, TenantNotConfiguredError),
        lambda e: GatewayError(ErrorKind.NOT_CONFIGURED, 500, MSG_NOT_CONFIGURED),
    ),
    (
        is_invalid_credential,
        lambda e: GatewayError(ErrorKind.INVALID_CREDENTIAL, 500, MSG_INVALID_CREDENTIAL),
    ),
    (
        is_quota_exceeded,
        lambda e: GatewayError(ErrorKind.QUOTA_EXCEEDED, 500, MSG_QUOTA_EXCEEDED),
    ),
    (
        is_model_not_found,
        lambda e: GatewayError(ErrorKind.PROVIDER_UNAVAILABLE, 500, MSG_MODEL_NOT_FOUND),
    ),
    (
        is_provider_unreachable,
        lambda e: GatewayError(ErrorKind.PROVIDER_UNAVAILABLE, 503, MSG_PROVIDER_DOWN),
    ),
    (
        lambda e: isinstance(e, TranscriptValidationError),
        lambda e: GatewayError(ErrorKind.BAD_REQUEST, 400, e.reason),
    ),
]


def translate_error(error: Exception) -> GatewayError:
    """
    Map a raw store/validator/provider failure to exactly one GatewayError.

    Rules are checked in priority order. Structured provider fields (HTTP code,
    status, ErrorInfo reason) are consulted before message substrings. Anything
    unmatched becomes a generic Internal error; raw text is never carried over.

    Args:
        error: The exception to classify

    Returns:
        GatewayError safe to show to an anonymous caller
    """
    if isinstance(error, GatewayError):
        return error

    for matches, build in _RULES:
        if matches(error):
            return build(error)

    return GatewayError(ErrorKind.INTERNAL, 500, MSG_INTERNAL)


def error_category(error: Exception) -> str:
    """Short category label for logs and metrics."""
    return translate_error(error).kind.value
