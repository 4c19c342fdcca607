"""Owner API router: credential and profile provisioning."""

import logging

from fastapi import APIRouter, Depends, Security
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from twin_gateway.adapters.vendor_adapter_gemini import validate_credential
from twin_gateway.api.dependencies import get_tenant_store
from twin_gateway.api.models import (
    ErrorResponse,
    SaveCredentialRequest,
    SaveCredentialResponse,
    SaveProfileRequest,
    SaveProfileResponse,
)
from twin_gateway.infra.auth import verify_owner_key, resolve_owned_bot
from twin_gateway.infra.error_handler import MSG_NOT_FOUND
from twin_gateway.infra.metrics import credential_validations_total
from twin_gateway.models.tenant import Persona
from twin_gateway.services.tenant_store import TenantStore

logger = logging.getLogger("twin_gateway.api.owner")

router = APIRouter()


@router.post(
    "/owner/credential",
    tags=["Owner"],
    response_model=SaveCredentialResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def save_credential(
    body: SaveCredentialRequest,
    key_bot_id: str = Security(verify_owner_key),
    store: TenantStore = Depends(get_tenant_store),
):
    """
    Validate a Gemini API key and store it on the owner's bot.

    Requires an owner key via the X-API-Key header. The key is checked with a
    single countTokens call before it is saved; validation messages here are
    more detailed than chat errors because only the owner sees them.
    """
    api_key = (body.apiKey or "").strip()
    if not api_key:
        return JSONResponse({"error": "No API key provided."}, status_code=400)

    public_bot_id = resolve_owned_bot(body.botId, key_bot_id)

    result = await validate_credential(api_key)
    credential_validations_total.labels(result="valid" if result.valid else "invalid").inc()
    if not result.valid:
        return JSONResponse({"error": result.message}, status_code=result.http_status)

    saved = await run_in_threadpool(store.save_credential, public_bot_id, api_key)
    if not saved:
        return JSONResponse({"error": MSG_NOT_FOUND}, status_code=404)

    logger.info("Owner credential updated", extra={"tenant_id": public_bot_id})
    return SaveCredentialResponse(message=result.message)


@router.put(
    "/owner/profile",
    tags=["Owner"],
    response_model=SaveProfileResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def save_profile(
    body: SaveProfileRequest,
    key_bot_id: str = Security(verify_owner_key),
    store: TenantStore = Depends(get_tenant_store),
):
    """
    Replace the bot's persona.

    Persona fields left out of `profile` are cleared and fall back to the
    prompt defaults. `displayName` and `personaMode` are kept when omitted.
    Takes effect on the next chat request.
    """
    public_bot_id = resolve_owned_bot(body.botId, key_bot_id)

    display_name = body.displayName.strip() if body.displayName is not None else None
    saved = await run_in_threadpool(
        store.save_profile,
        public_bot_id,
        display_name,
        Persona.from_dict(body.profile),
        body.personaMode,
    )
    if not saved:
        return JSONResponse({"error": MSG_NOT_FOUND}, status_code=404)

    logger.info("Owner profile updated", extra={"tenant_id": public_bot_id})
    return SaveProfileResponse(message="Profile saved.")
