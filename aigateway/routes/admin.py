"""Admin endpoints: provider catalog, API keys, assignments, usage and health."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from aigateway.models.access import CreateApiAssignmentRequest, CreateApiKeyRequest
from aigateway.models.provider import (
    ApiProviderType,
    CreateApiProviderRequest,
    UpdateApiProviderRequest,
)
from aigateway.models.response import ManagementResponse, PaginatedResponse
from aigateway.routes.deps import to_response, verify_admin_role
from aigateway.services.error_service import ErrorService

router = APIRouter()


class HealthActionRequest(BaseModel):
    action: Literal["start", "stop", "check"]
    service_id: Optional[str] = None
    interval_seconds: float = Field(default=30, gt=0)


class BlogWriterConfigUpdate(BaseModel):
    base_url: str = Field(min_length=1)
    timeout: Optional[float] = Field(default=None, gt=0)
    retry_attempts: Optional[int] = Field(default=None, ge=1)


# Providers


@router.get("/providers")
async def list_providers(
    request: Request,
    type: Optional[ApiProviderType] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    admin_user: str = Depends(verify_admin_role),
):
    """List providers, optionally of one type, one page at a time."""
    result = await request.app.state.api_manager.list_providers(type)
    if not result.success:
        return to_response(result)

    items = [p.model_dump(mode="json") for p in result.data]
    return PaginatedResponse.from_items(items, page, limit)


@router.post("/providers")
async def create_provider(
    body: CreateApiProviderRequest,
    request: Request,
    admin_user: str = Depends(verify_admin_role),
):
    result = await request.app.state.api_manager.create_provider(body)
    return to_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/providers/{provider_id}")
async def get_provider(
    provider_id: str, request: Request, admin_user: str = Depends(verify_admin_role)
):
    return to_response(await request.app.state.api_manager.get_provider(provider_id))


@router.put("/providers/{provider_id}")
async def update_provider(
    provider_id: str,
    body: UpdateApiProviderRequest,
    request: Request,
    admin_user: str = Depends(verify_admin_role),
):
    result = await request.app.state.api_manager.update_provider(provider_id, body)
    return to_response(result, failure_status=status.HTTP_400_BAD_REQUEST)


@router.delete("/providers/{provider_id}")
async def delete_provider(
    provider_id: str, request: Request, admin_user: str = Depends(verify_admin_role)
):
    return to_response(await request.app.state.api_manager.delete_provider(provider_id))


# API keys


@router.get("/api-keys")
async def list_api_keys(request: Request, admin_user: str = Depends(verify_admin_role)):
    """Keys owned by the calling admin."""
    return to_response(await request.app.state.api_manager.list_api_keys(admin_user))


@router.post("/api-keys")
async def create_api_key(
    body: CreateApiKeyRequest,
    request: Request,
    admin_user: str = Depends(verify_admin_role),
):
    result = await request.app.state.api_manager.create_api_key(admin_user, body)
    return to_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/api-keys/{api_key_id}")
async def get_api_key(
    api_key_id: str, request: Request, admin_user: str = Depends(verify_admin_role)
):
    return to_response(await request.app.state.api_manager.get_api_key(api_key_id))


@router.delete("/api-keys/{api_key_id}")
async def delete_api_key(
    api_key_id: str, request: Request, admin_user: str = Depends(verify_admin_role)
):
    return to_response(await request.app.state.api_manager.delete_api_key(api_key_id))


# Assignments


@router.get("/assignments")
async def list_assignments(request: Request, admin_user: str = Depends(verify_admin_role)):
    return to_response(await request.app.state.api_manager.list_assignments(admin_user))


@router.post("/assignments")
async def create_assignment(
    body: CreateApiAssignmentRequest,
    request: Request,
    admin_user: str = Depends(verify_admin_role),
):
    result = await request.app.state.api_manager.create_assignment(admin_user, body)
    return to_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/assignments/{assignment_id}")
async def get_assignment(
    assignment_id: str, request: Request, admin_user: str = Depends(verify_admin_role)
):
    return to_response(await request.app.state.api_manager.get_assignment(assignment_id))


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: str, request: Request, admin_user: str = Depends(verify_admin_role)
):
    return to_response(await request.app.state.api_manager.delete_assignment(assignment_id))


# Usage


@router.get("/usage")
async def get_usage(
    request: Request,
    provider_id: Optional[str] = None,
    user_id: Optional[str] = None,
    admin_user: str = Depends(verify_admin_role),
):
    return to_response(await request.app.state.api_manager.get_usage(provider_id, user_id))


# Health


@router.get("/health")
async def get_system_health(request: Request, admin_user: str = Depends(verify_admin_role)):
    """System health, the latest check per service and request metrics."""
    health_monitor = request.app.state.health_monitor
    return ManagementResponse.ok(
        {
            "system": health_monitor.get_system_health().model_dump(mode="json"),
            "services": [r.model_dump(mode="json") for r in health_monitor.get_all_health_status()],
            "metrics": [m.model_dump(mode="json") for m in health_monitor.get_all_metrics()],
            "monitor_running": health_monitor.is_running,
        }
    )


@router.post("/health")
async def manage_health_monitor(
    body: HealthActionRequest,
    request: Request,
    admin_user: str = Depends(verify_admin_role),
):
    """Start or stop the monitor, or run checks right away."""
    health_monitor = request.app.state.health_monitor

    if body.action == "start":
        await health_monitor.start(body.interval_seconds)
    elif body.action == "stop":
        await health_monitor.stop()
    elif body.service_id:
        if health_monitor.registry.get_service(body.service_id) is None:
            return to_response(ManagementResponse.fail("Service not found"))
        result = await health_monitor.check_service(body.service_id)
        return ManagementResponse.ok(result.model_dump(mode="json"))
    else:
        await health_monitor.perform_health_checks()
        await request.app.state.api_manager.perform_all_health_checks()
        return ManagementResponse.ok(
            health_monitor.get_system_health().model_dump(mode="json"),
            "Health checks completed",
        )

    ErrorService.log_operation(
        "admin-health-route",
        body.action,
        additional_data={"user_id": admin_user},
    )
    return ManagementResponse.ok(message=f"Health monitor {body.action} completed successfully")


# Rate limits


@router.get("/rate-limits")
async def get_rate_limit_status(
    request: Request,
    key: str,
    profile: str = "api",
    admin_user: str = Depends(verify_admin_role),
):
    rate_limit_service = request.app.state.rate_limit_service
    if profile not in rate_limit_service.limiters:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ManagementResponse.fail(f"Unknown rate limit profile: {profile}").model_dump(mode="json"),
        )

    status_data = await rate_limit_service.get_rate_limit_status(key, profile)
    if status_data is None:
        return to_response(ManagementResponse.fail("Rate limit key not found"))
    return ManagementResponse.ok(status_data)


@router.delete("/rate-limits")
async def reset_rate_limit(
    request: Request,
    key: str,
    profile: Optional[str] = None,
    admin_user: str = Depends(verify_admin_role),
):
    removed = await request.app.state.rate_limit_service.reset_rate_limit(key, profile)
    if not removed:
        return to_response(ManagementResponse.fail("Rate limit key not found"))
    return ManagementResponse.ok(message="Rate limit reset")


# Upstream service configuration


@router.get("/services/blog-writer/config")
async def get_blog_writer_config(request: Request, admin_user: str = Depends(verify_admin_role)):
    return ManagementResponse.ok(request.app.state.blog_writer_client.get_config())


@router.put("/services/blog-writer/config")
async def update_blog_writer_config(
    body: BlogWriterConfigUpdate,
    request: Request,
    admin_user: str = Depends(verify_admin_role),
):
    client = request.app.state.blog_writer_client
    client.update_config(
        base_url=body.base_url, timeout=body.timeout, retry_attempts=body.retry_attempts
    )
    ErrorService.log_operation(
        "admin-blog-writer-config",
        "update-config",
        additional_data={"user_id": admin_user, "base_url": body.base_url},
    )
    return ManagementResponse.ok(client.get_config(), "Configuration updated successfully")
