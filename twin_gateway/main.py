"""FastAPI application for the persona chat gateway."""

import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from twin_gateway.infra.error_handler import GatewayError, MSG_INTERNAL
from twin_gateway.infra.logging import app_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    from twin_gateway.api.dependencies import get_gateway, reset_gateway
    from twin_gateway.adapters.vendor_adapter_gemini import close_http_client
    from twin_gateway.infra.database import dispose_engine

    app_logger.info("Application starting up")
    # Build shared clients before the first request arrives
    get_gateway()

    yield

    app_logger.info("Application shutting down")
    await close_http_client()
    dispose_engine()
    reset_gateway()


app = FastAPI(
    title="Twin Gateway API",
    description="""
    Twin Gateway serves personal "digital twin" chatbots. A public bot id resolves to
    an owner's persona and the owner's own Gemini API key; anyone can chat with the
    persona through a stateless endpoint.

    ## Features

    - **Chat**: `POST /chat/{botId}` with the full transcript on every request
    - **Bots**: public profile metadata for a bot page
    - **Owner**: validate and store the bot's Gemini API key

    ## Authentication

    Chat and bot profile endpoints are public. Owner endpoints require an owner key via
    the `X-API-Key` header.
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {"name": "Chat", "description": "Public, stateless persona chat"},
        {"name": "Bots", "description": "Public bot profile metadata"},
        {"name": "Owner", "description": "Owner-only credential provisioning"},
        {"name": "Health", "description": "Health check and monitoring endpoints"},
    ],
)

# Setup middleware
from twin_gateway.infra.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from twin_gateway.infra.timeout import TimeoutMiddleware, REQUEST_TIMEOUT

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(TimeoutMiddleware, timeout=REQUEST_TIMEOUT)

# Import and register routers
from twin_gateway.api.routers import chat, bots, owner, health

app.include_router(chat.router)
app.include_router(bots.router)
app.include_router(owner.router)
app.include_router(health.router)


# Error handlers
@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Render a GatewayError that escaped a route."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors()},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    error_id = str(uuid.uuid4())
    app_logger.error(f"Unhandled exception: {type(exc).__name__}", exc_info=True, extra={"error_id": error_id})
    return JSONResponse(
        status_code=500,
        content={"error": f"{MSG_INTERNAL}. Error ID: {error_id}"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
