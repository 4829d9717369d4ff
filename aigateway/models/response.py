"""Response envelopes shared by every route and manager operation."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class ErrorCode(str, Enum):
    """Standard error codes."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    NO_COMPATIBLE_SERVICES = "NO_COMPATIBLE_SERVICES"
    ROUTING_ERROR = "ROUTING_ERROR"


class ManagementResponse(BaseModel):
    """Uniform ``{success, data, error, message, timestamp}`` envelope."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "data": {"id": "blog-writer-prod", "name": "Blog Writer API - Production"},
                "error": None,
                "message": "Provider created successfully",
                "timestamp": "2024-01-10T10:30:00+00:00",
            }
        }
    )

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ManagementResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ManagementResponse":
        return cls(success=False, error=error, data=data)


class ErrorResponse(BaseModel):
    """Error envelope produced by the middleware and exception handlers."""

    success: bool = False
    data: None = None
    error: str
    code: ErrorCode
    details: Optional[Dict[str, Any]] = None
    correlation_id: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "data": None,
                "error": "Invalid or expired JWT token",
                "code": "UNAUTHORIZED",
                "details": None,
                "correlation_id": "123e4567-e89b-12d3-a456-426614174000",
                "timestamp": "2024-01-10T10:30:00+00:00",
            }
        }
    )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(BaseModel):
    """List envelope with page metadata."""

    success: bool = True
    data: list = Field(default_factory=list)
    pagination: Pagination
    timestamp: str = Field(default_factory=utc_timestamp)

    @classmethod
    def from_items(cls, items: list, page: int, limit: int) -> "PaginatedResponse":
        total = len(items)
        start = (page - 1) * limit
        end = start + limit
        return cls(
            data=items[start:end],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=-(-total // limit) if limit else 0,
                has_next=end < total,
                has_prev=page > 1,
            ),
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # healthy or degraded
    timestamp: str
    uptime_seconds: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-10T10:30:00+00:00",
                "uptime_seconds": 3600,
            }
        }
    )


class ServiceStatus(BaseModel):
    """Health status of one upstream provider."""

    service_id: str
    service_name: str
    status: str  # healthy, degraded, unhealthy
    last_checked: Optional[str] = None
    response_time: Optional[float] = None
    error: Optional[str] = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    overall: str
    services: Dict[str, ServiceStatus]
