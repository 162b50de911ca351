"""Health check API router."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tool_proxy import __version__
from tool_proxy.api.models import StatusResponse
from tool_proxy.infra.metrics import get_metrics_response

router = APIRouter()


@router.get("/health", tags=["Health"])
async def health_check():
    """Combined health check endpoint."""
    return {
        "status": "ok",
        "service": "tool-proxy",
        "version": __version__,
    }


@router.get("/health/live", tags=["Health"])
async def liveness_probe():
    """Liveness probe - indicates if the process is running."""
    return {"status": "alive"}


@router.get("/health/ready", tags=["Health"])
async def readiness_probe(request: Request):
    """Readiness probe - ready once at least one backend is connected."""
    pool = request.app.state.runtime.backend_pool
    if pool.connected_backends():
        return {"status": "ready"}
    return JSONResponse(status_code=503, content={"status": "not_ready"})


@router.get("/status", tags=["Health"], response_model=StatusResponse)
async def proxy_status(request: Request):
    """Connected backends and the tool identifiers each one provides."""
    return request.app.state.runtime.handler.status()


@router.get("/metrics", tags=["Health"])
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics_response()
