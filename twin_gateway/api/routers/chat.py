"""Public chat API router.

The chat endpoint is embedded in third-party pages, so every response
(success, error and preflight) carries permissive CORS headers. It is
unauthenticated.
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from twin_gateway.api.dependencies import get_gateway
from twin_gateway.api.models import ChatRequest, ChatResponse, ErrorResponse
from twin_gateway.infra.error_handler import ErrorKind, GatewayError
from twin_gateway.services.gateway import ChatGateway, RequestCancelled

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Non-standard "client closed request"; never seen by the caller
CLIENT_CLOSED_REQUEST = 499


def _error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(error.to_body(), status_code=error.http_status, headers=CORS_HEADERS)


@router.options("/chat/{public_bot_id}", tags=["Chat"])
async def chat_preflight(public_bot_id: str):
    """CORS preflight. Answered without looking up the bot."""
    return JSONResponse({}, headers=CORS_HEADERS)


@router.post(
    "/chat/{public_bot_id}",
    tags=["Chat"],
    response_model=ChatResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed body or transcript"},
        404: {"model": ErrorResponse, "description": "Bot not found"},
        500: {"model": ErrorResponse, "description": "Bot not configured, invalid or over-quota API key, unknown model, or internal error"},
        503: {"model": ErrorResponse, "description": "AI provider unreachable or timed out"},
    },
)
async def chat(
    public_bot_id: str,
    request: Request,
    gateway: ChatGateway = Depends(get_gateway),
):
    """
    Answer one message as the bot's persona.

    The transcript is stateless: the caller sends the full history on every
    request.

    **Example Request:**
    ```json
    {
        "history": [
            {"role": "caller", "text": "Hi!"},
            {"role": "assistant", "text": "Hello! Ask me anything about Ada."}
        ],
        "newMessage": "What does Ada work on?"
    }
    ```
    """
    # Only the JSON envelope is checked here. Field shapes are left to the
    # transcript validator, which runs after the bot is resolved
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return _error_response(GatewayError(
            ErrorKind.BAD_REQUEST,
            400,
            "Request body must be a JSON object with history and newMessage.",
        ))
    payload = ChatRequest.model_validate(body)

    try:
        reply = await gateway.handle_chat(
            public_bot_id,
            payload.history,
            payload.newMessage,
            is_disconnected=request.is_disconnected,
        )
    except GatewayError as e:
        return _error_response(e)
    except RequestCancelled:
        return Response(status_code=CLIENT_CLOSED_REQUEST, headers=CORS_HEADERS)

    return JSONResponse(ChatResponse(response=reply).model_dump(), headers=CORS_HEADERS)
