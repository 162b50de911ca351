"""Deadline configuration and request timeout middleware."""

import asyncio
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request timeouts on the HTTP surface."""

    def __init__(self, app, timeout: float = 60):
        """
        Initialize timeout middleware.

        Args:
            app: FastAPI application
            timeout: Request timeout in seconds (default: 60)
        """
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        """Process request with timeout."""
        try:
            return await asyncio.wait_for(
                call_next(request),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": f"Request timeout after {self.timeout} seconds"},
            )


# Timeout defaults (seconds), overridable through the environment
REQUEST_TIMEOUT = 180  # whole HTTP request
BACKEND_CONNECT_TIMEOUT = 30  # spawn/handshake/tools/list per backend
BACKEND_CALL_TIMEOUT = 120  # single tools/call on a backend
SEARCH_CALL_TIMEOUT = 60  # single Bedrock InvokeModel call
