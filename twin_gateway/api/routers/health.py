"""Health check API router."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from twin_gateway.api.dependencies import get_tenant_store
from twin_gateway.infra.metrics import get_metrics_response
from twin_gateway.services.tenant_store import TenantStore

router = APIRouter()


@router.get("/health", tags=["Health"])
async def health_check():
    """Combined health check endpoint."""
    return {
        "status": "ok",
        "service": "twin-gateway",
        "version": "1.0.0",
    }


@router.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness check - indicates if the process is running."""
    return {"status": "alive"}


@router.get("/health/ready", tags=["Health"])
async def readiness_check(store: TenantStore = Depends(get_tenant_store)):
    """Readiness check - checks tenant store connectivity."""
    if await run_in_threadpool(store.ping):
        return {"status": "ready"}
    return JSONResponse({"status": "not_ready"}, status_code=503)


@router.get("/metrics", tags=["Health"])
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics_response()
