"""Health check endpoints."""

import time

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from aigateway.models.provider import HealthState
from aigateway.models.response import (
    HealthResponse,
    ReadinessResponse,
    ServiceStatus,
    utc_timestamp,
)

router = APIRouter()

# Track start time for uptime calculation
_start_time = time.time()


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health():
    """Liveness of the gateway process itself, with uptime."""
    return HealthResponse(
        status="healthy",
        timestamp=utc_timestamp(),
        uptime_seconds=int(time.time() - _start_time),
    )


@router.get("/healthz", status_code=status.HTTP_200_OK)
async def healthz():
    """Kubernetes liveness probe endpoint."""
    return {"status": "OK"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def ready(request: Request):
    """Kubernetes readiness probe endpoint.

    Ready unless the health monitor has checked the upstream services and
    found every one of them down. Returns 503 when not ready.
    """
    health_monitor = getattr(request.app.state, "health_monitor", None)
    if not health_monitor:
        return ReadinessResponse(ready=True, overall="unknown", services={})

    system = health_monitor.get_system_health()
    if system.total_services == 0:
        return ReadinessResponse(ready=True, overall="unknown", services={})

    services = {
        service_id: ServiceStatus(
            service_id=service_id,
            service_name=result.service_name,
            status=result.status.value,
            last_checked=result.last_checked,
            response_time=result.response_time,
            error=result.error,
        )
        for service_id, result in system.services.items()
    }
    is_ready = system.overall != HealthState.UNHEALTHY
    response = ReadinessResponse(ready=is_ready, overall=system.overall.value, services=services)

    if not is_ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )
    return response
