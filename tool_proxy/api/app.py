"""FastAPI application for the HTTP upstream surface."""

import uuid
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tool_proxy import __version__
from tool_proxy.api.routers import health, tools
from tool_proxy.infra.config import config
from tool_proxy.infra.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from tool_proxy.infra.timeout import TimeoutMiddleware

logger = logging.getLogger(__name__)


def create_app(runtime) -> FastAPI:
    """
    Create the HTTP app bound to one ProxyRuntime.

    Backends are connected on startup and torn down on shutdown, both from
    the lifespan task.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Tool Proxy HTTP server starting up")
        await runtime.start()

        yield

        logger.info("Tool Proxy HTTP server shutting down")
        await runtime.shutdown()

    app = FastAPI(
        title="Tool Proxy API",
        description="""
    Tool Proxy sits in front of many MCP backend servers and exposes only two operations.

    ## Features

    - **Search**: find backend tools relevant to a natural language query
    - **Call**: invoke a backend tool by its unique name (`backend__tool`)
    - **Status**: connected backends and their tools, health probes, Prometheus metrics
    """,
        version=__version__,
        lifespan=lifespan,
        tags_metadata=[
            {
                "name": "Tools",
                "description": "Search backend tools and call them",
            },
            {
                "name": "Health",
                "description": "Health check, status and monitoring endpoints",
            },
        ],
    )
    app.state.runtime = runtime

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(TimeoutMiddleware, timeout=config.REQUEST_TIMEOUT)

    app.include_router(tools.router)
    app.include_router(health.router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        error_id = str(uuid.uuid4())
        logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
        return JSONResponse(
            status_code=500,
            content={"detail": f"Internal server error. Error ID: {error_id}"},
        )

    return app
