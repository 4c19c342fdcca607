"""Public bot profile API router."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from twin_gateway.api.dependencies import get_gateway
from twin_gateway.api.models import BotProfileResponse, ErrorResponse
from twin_gateway.infra.error_handler import translate_error
from twin_gateway.services.gateway import ChatGateway

router = APIRouter()


@router.get(
    "/bots/{public_bot_id}",
    tags=["Bots"],
    response_model=BotProfileResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_bot_profile(public_bot_id: str, gateway: ChatGateway = Depends(get_gateway)):
    """Display name and bio for a bot's public page."""
    try:
        tenant = await gateway.resolve(public_bot_id)
    except Exception as e:
        error = translate_error(e)
        return JSONResponse(error.to_body(), status_code=error.http_status)

    bio = tenant.persona.bio.strip() if tenant.persona.bio else None
    return BotProfileResponse(
        botId=tenant.public_bot_id,
        displayName=tenant.display_name or "AI Assistant",
        bio=bio or None,
        configured=tenant.is_configured,
    )
