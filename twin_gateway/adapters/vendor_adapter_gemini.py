"""Gemini vendor adapter (generateContent chat turns and credential validation)."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

import httpx

from twin_gateway.infra.config import config
from twin_gateway.infra.error_handler import (
    ProviderError,
    ProviderUnavailableError,
    error_category,
    is_invalid_credential,
    is_quota_exceeded,
)
from twin_gateway.infra.metrics import llm_calls_total, llm_call_duration
from twin_gateway.models.transcript import ConversationTurn, TurnRole

logger = logging.getLogger("twin_gateway.adapters.gemini")

PROVIDER_NAME = "gemini"

GEMINI_ROLES = {
    TurnRole.CALLER: "user",
    TurnRole.ASSISTANT: "model",
}

_http_client: Optional[httpx.AsyncClient] = None
_http_client_lock = threading.Lock()


def get_http_client() -> httpx.AsyncClient:
    """
    Shared connection pool for all provider calls.

    The pool carries no credentials; each request sets its own key header.
    """
    global _http_client
    if _http_client is None:
        with _http_client_lock:
            if _http_client is None:
                _http_client = httpx.AsyncClient(
                    timeout=httpx.Timeout(config.PROVIDER_CALL_TIMEOUT, connect=5.0),
                )
    return _http_client


async def close_http_client() -> None:
    """Close the shared pool (shutdown)."""
    global _http_client
    client = _http_client
    _http_client = None
    if client is not None:
        await client.aclose()


def build_contents(turns: List[ConversationTurn], new_message: str) -> List[Dict[str, Any]]:
    """Convert validated turns plus the new message to Gemini `contents`."""
    contents = [
        {"role": GEMINI_ROLES[turn.role], "parts": [{"text": turn.text}]}
        for turn in turns
    ]
    contents.append({"role": "user", "parts": [{"text": new_message}]})
    return contents


def parse_error_response(response: httpx.Response) -> ProviderError:
    """
    Build a ProviderError from a Gemini error body.

    Gemini errors look like:
    {
        "error": {
            "code": 400,
            "message": "API key not valid. Please pass a valid API key.",
            "status": "INVALID_ARGUMENT",
            "details": [{"@type": "type.googleapis.com/google.rpc.ErrorInfo",
                         "reason": "API_KEY_INVALID"}]
        }
    }
    """
    message = response.text or f"HTTP {response.status_code}"
    status = None
    reason = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        message = error.get("message") or message
        status = error.get("status")
        for detail in error.get("details") or []:
            if isinstance(detail, dict) and detail.get("reason"):
                reason = detail["reason"]
                break

    return ProviderError(message, status_code=response.status_code, status=status, reason=reason)


def extract_text(result: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = result.get("candidates") or []
    if not candidates:
        block_reason = (result.get("promptFeedback") or {}).get("blockReason")
        raise ProviderError("No response from Gemini", reason=block_reason or "NO_CANDIDATES")

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    texts = [part["text"] for part in parts if isinstance(part, dict) and "text" in part]
    text = "".join(texts).strip()
    if not text:
        finish_reason = candidate.get("finishReason") or "EMPTY"
        raise ProviderError("Gemini returned no text", reason=finish_reason)
    return text


async def _post(client: httpx.AsyncClient, url: str, payload: Dict[str, Any], credential: str) -> Dict[str, Any]:
    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": credential,
    }
    try:
        response = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise ProviderUnavailableError("Gemini request timed out") from e
    except httpx.TransportError as e:
        raise ProviderUnavailableError(f"Gemini unreachable: {type(e).__name__}") from e

    if response.status_code >= 400:
        raise parse_error_response(response)

    try:
        return response.json()
    except ValueError as e:
        raise ProviderError("Gemini returned a non-JSON body", status_code=response.status_code) from e


class ChatProvider(ABC):
    """One chat round trip against a remote LLM with the tenant's credential."""

    @abstractmethod
    async def send(
        self,
        system_prompt: str,
        turns: List[ConversationTurn],
        new_message: str,
        credential: str,
        model: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> str:
        """Return generated text or raise the provider's raw error."""


class GeminiProvider(ChatProvider):
    """Stateless Gemini client. Never retries; never uses a shared key."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, api_base: Optional[str] = None):
        self._client = client
        self.api_base = (api_base or config.GEMINI_API_BASE).rstrip("/")

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    async def send(
        self,
        system_prompt: str,
        turns: List[ConversationTurn],
        new_message: str,
        credential: str,
        model: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> str:
        """
        Call generateContent once.

        Args:
            system_prompt: Compiled persona
            turns: Validated history, oldest first
            new_message: Caller message to answer
            credential: The tenant's own Gemini API key
            model: Model name (default: config.GEMINI_MODEL)
            tenant_id: Public bot id, for log metadata only

        Returns:
            Generated text

        Raises:
            ProviderError: Gemini answered with an error or without text
            ProviderUnavailableError: Gemini could not be reached in time
        """
        model_name = model or config.GEMINI_MODEL
        url = f"{self.api_base}/models/{model_name}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": build_contents(turns, new_message),
        }

        start_time = time.time()
        try:
            result = await _post(self.client, url, payload, credential)
            text = extract_text(result)
        except Exception as e:
            latency = time.time() - start_time
            llm_calls_total.labels(provider=PROVIDER_NAME, model=model_name, status="failure").inc()
            llm_call_duration.labels(provider=PROVIDER_NAME, model=model_name).observe(latency)
            # Metadata only: no credential, no prompt, no provider text
            logger.warning(
                "Gemini call failed",
                extra={
                    "tenant_id": tenant_id,
                    "model": model_name,
                    "error_category": error_category(e),
                    "status_code": getattr(e, "status_code", None),
                    "latency_ms": int(latency * 1000),
                },
            )
            raise

        latency = time.time() - start_time
        llm_calls_total.labels(provider=PROVIDER_NAME, model=model_name, status="success").inc()
        llm_call_duration.labels(provider=PROVIDER_NAME, model=model_name).observe(latency)
        logger.info(
            "Gemini call completed",
            extra={
                "tenant_id": tenant_id,
                "model": model_name,
                "turns": len(turns),
                "latency_ms": int(latency * 1000),
            },
        )
        return text


# ============================================================================
# Credential validation (owner path)
# ============================================================================

KEY_OK_MESSAGE = "API key saved and validated successfully!"
KEY_INVALID_MESSAGE = "This API key is not valid. Please check it and try again."
KEY_QUOTA_MESSAGE = "This API key has exceeded its quota or rate limit."
KEY_FAILED_MESSAGE = "API key validation failed. The key may be incorrect or disabled."


@dataclass
class KeyValidationResult:
    """Outcome of validating a candidate credential. Messages are owner-facing."""
    valid: bool
    http_status: int
    message: str


async def validate_credential(
    credential: str,
    model: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    api_base: Optional[str] = None,
) -> KeyValidationResult:
    """
    Check a candidate Gemini key with a single countTokens call.

    countTokens is free and fast, so it tests the key without spending quota.
    """
    model_name = model or config.GEMINI_MODEL
    base = (api_base or config.GEMINI_API_BASE).rstrip("/")
    url = f"{base}/models/{model_name}:countTokens"
    payload = {"contents": [{"parts": [{"text": "test"}]}]}

    try:
        await _post(client or get_http_client(), url, payload, credential)
    except Exception as e:
        logger.warning(
            "Gemini key validation failed",
            extra={"model": model_name, "error_category": error_category(e)},
        )
        if is_invalid_credential(e):
            return KeyValidationResult(False, 400, KEY_INVALID_MESSAGE)
        if is_quota_exceeded(e) or "limit" in str(e).lower():
            return KeyValidationResult(False, 400, KEY_QUOTA_MESSAGE)
        return KeyValidationResult(False, 500, KEY_FAILED_MESSAGE)

    return KeyValidationResult(True, 200, KEY_OK_MESSAGE)
