"""Request timeout middleware."""

import asyncio
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("twin_gateway.timeout")


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Outer bound on request duration, above the per-call timeouts."""

    def __init__(self, app, timeout: int = 60):
        """
        Initialize timeout middleware.

        Args:
            app: FastAPI application
            timeout: Request timeout in seconds (default: 60)
        """
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Request timed out", extra={"path": request.url.path, "timeout": self.timeout})
            return JSONResponse(
                {"error": f"Request timeout after {self.timeout} seconds"},
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            )


# Must exceed TENANT_LOOKUP_TIMEOUT + PROVIDER_CALL_TIMEOUT
REQUEST_TIMEOUT = 60
