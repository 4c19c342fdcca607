"""Gateway orchestrator: one stateless pass per chat request.

States run strictly in order:

    RESOLVING -> CONFIGURING -> VALIDATING -> GENERATING -> RESPONDING

Any failure moves to FAILED with exactly one GatewayError and no later state
runs, so a bad transcript never reaches the provider. Nothing is retried and
nothing is remembered between requests.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from starlette.concurrency import run_in_threadpool

from twin_gateway.adapters.vendor_adapter_gemini import ChatProvider
from twin_gateway.infra.config import config
from twin_gateway.infra.error_handler import (
    ErrorKind,
    GatewayError,
    ProviderError,
    ProviderUnavailableError,
    TenantNotConfiguredError,
    TenantNotFoundError,
    translate_error,
)
from twin_gateway.infra.metrics import chat_requests_total, chat_request_duration
from twin_gateway.infra.validation import is_valid_public_bot_id
from twin_gateway.models.tenant import TenantRecord
from twin_gateway.models.transcript import ValidatedTranscript
from twin_gateway.services.persona_compiler import compile_persona
from twin_gateway.services.tenant_store import TenantStore
from twin_gateway.services.transcript_validator import validate_transcript

logger = logging.getLogger("twin_gateway.services.gateway")

DisconnectCheck = Callable[[], Awaitable[bool]]


class GatewayState(str, Enum):
    """Per-request orchestrator states."""
    RESOLVING = "resolving"
    CONFIGURING = "configuring"
    VALIDATING = "validating"
    GENERATING = "generating"
    RESPONDING = "responding"
    FAILED = "failed"


class TenantLookupTimeout(Exception):
    """Tenant store did not answer within the lookup timeout."""
    pass


class RequestCancelled(Exception):
    """Caller disconnected before generation finished."""
    pass


class ChatGateway:
    """Composes store, compiler, validator and provider for each request."""

    def __init__(
        self,
        store: TenantStore,
        provider: ChatProvider,
        lookup_timeout: Optional[float] = None,
        provider_timeout: Optional[float] = None,
        max_history_turns: Optional[int] = None,
        disconnect_poll_interval: Optional[float] = None,
    ):
        self.store = store
        self.provider = provider
        self.lookup_timeout = lookup_timeout if lookup_timeout is not None else config.TENANT_LOOKUP_TIMEOUT
        self.provider_timeout = provider_timeout if provider_timeout is not None else config.PROVIDER_CALL_TIMEOUT
        self.max_history_turns = (
            max_history_turns if max_history_turns is not None else config.MAX_HISTORY_TURNS
        )
        self.disconnect_poll_interval = (
            disconnect_poll_interval
            if disconnect_poll_interval is not None
            else config.DISCONNECT_POLL_INTERVAL
        )

    async def handle_chat(
        self,
        public_bot_id: str,
        history: Any,
        new_message: Any,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> str:
        """
        Answer one caller message with the tenant's persona.

        Args:
            public_bot_id: Public bot id from the URL
            history: Caller-supplied history (decoded JSON, unvalidated)
            new_message: Caller-supplied message (decoded JSON, unvalidated)
            is_disconnected: Optional check used to cancel generation when the
                caller goes away

        Returns:
            Generated reply text

        Raises:
            GatewayError: Any failure, already translated and caller-safe
            RequestCancelled: The caller disconnected during generation
        """
        start_time = time.time()
        state = GatewayState.RESOLVING
        try:
            tenant = await self.resolve(public_bot_id)

            state = GatewayState.CONFIGURING
            if not tenant.is_configured:
                raise TenantNotConfiguredError(public_bot_id)
            system_prompt = compile_persona(tenant)

            state = GatewayState.VALIDATING
            transcript = validate_transcript(history, new_message, max_turns=self.max_history_turns)

            state = GatewayState.GENERATING
            reply = await self._generate(tenant, system_prompt, transcript, is_disconnected)

            state = GatewayState.RESPONDING
        except RequestCancelled:
            chat_requests_total.labels(outcome="cancelled").inc()
            logger.info(
                "Caller disconnected, generation cancelled",
                extra={"tenant_id": public_bot_id, "state": state.value},
            )
            raise
        except Exception as e:
            gateway_error = translate_error(e)
            gateway_error.state = state.value
            self._log_failure(public_bot_id, state, gateway_error, e)
            chat_requests_total.labels(outcome=gateway_error.kind.value).inc()
            chat_request_duration.observe(time.time() - start_time)
            raise gateway_error from e

        chat_requests_total.labels(outcome="ok").inc()
        chat_request_duration.observe(time.time() - start_time)
        return reply

    async def resolve(self, public_bot_id: str) -> TenantRecord:
        """Look up a tenant by public id within the lookup timeout."""
        if not is_valid_public_bot_id(public_bot_id):
            raise TenantNotFoundError(public_bot_id)

        try:
            tenant = await asyncio.wait_for(
                run_in_threadpool(self.store.lookup, public_bot_id),
                timeout=self.lookup_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TenantLookupTimeout(f"Tenant lookup exceeded {self.lookup_timeout}s") from e

        if tenant is None:
            raise TenantNotFoundError(public_bot_id)
        return tenant

    async def _generate(
        self,
        tenant: TenantRecord,
        system_prompt: str,
        transcript: ValidatedTranscript,
        is_disconnected: Optional[DisconnectCheck],
    ) -> str:
        call = asyncio.wait_for(
            self.provider.send(
                system_prompt,
                transcript.history,
                transcript.new_message,
                tenant.credential,
                model=tenant.llm_model,
                tenant_id=tenant.public_bot_id,
            ),
            timeout=self.provider_timeout,
        )
        if is_disconnected is None:
            return await call

        generation = asyncio.ensure_future(call)
        watcher = asyncio.ensure_future(self._watch_disconnect(is_disconnected))
        try:
            done, _ = await asyncio.wait({generation, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if generation not in done and watcher.exception() is None:
                generation.cancel()
                await asyncio.gather(generation, return_exceptions=True)
                raise RequestCancelled()
            return await generation
        finally:
            for task in (generation, watcher):
                if not task.done():
                    task.cancel()

    async def _watch_disconnect(self, is_disconnected: DisconnectCheck) -> None:
        while not await is_disconnected():
            await asyncio.sleep(self.disconnect_poll_interval)

    def _log_failure(
        self,
        public_bot_id: str,
        state: GatewayState,
        gateway_error: GatewayError,
        cause: Exception,
    ) -> None:
        extra = {
            "tenant_id": public_bot_id,
            "state": state.value,
            "error_kind": gateway_error.kind.value,
            "http_status": gateway_error.http_status,
        }
        if gateway_error.kind == ErrorKind.INTERNAL and not isinstance(
            cause, (ProviderError, ProviderUnavailableError)
        ):
            # Unexpected failure: keep the traceback
            logger.error("Chat request failed", extra=extra, exc_info=cause)
        elif gateway_error.http_status >= 500:
            logger.warning("Chat request failed", extra=extra)
        else:
            logger.info("Chat request rejected", extra=extra)
