"""Pydantic models for the AI gateway."""

from aigateway.models.access import (
    ApiAssignment,
    ApiKey,
    CreateApiAssignmentRequest,
    CreateApiKeyRequest,
    FailoverStrategy,
    LoadBalancingStrategy,
)
from aigateway.models.blog import BlogWriterRequest, BlogWriterResponse
from aigateway.models.health import HealthCheckResult, MonitorMetrics, SystemHealth
from aigateway.models.provider import (
    ApiEnvironment,
    ApiProvider,
    ApiProviderType,
    CreateApiProviderRequest,
    HealthState,
    UpdateApiProviderRequest,
)
from aigateway.models.request import ApiRequest, ApiResponse, ApiUsage
from aigateway.models.response import (
    ErrorCode,
    ErrorResponse,
    HealthResponse,
    ManagementResponse,
    PaginatedResponse,
    ReadinessResponse,
    ServiceStatus,
)
from aigateway.models.routing import (
    ServiceDefinition,
    ServiceType,
    UnifiedRequest,
    UnifiedResponse,
)

__all__ = [
    "ApiAssignment",
    "ApiKey",
    "CreateApiAssignmentRequest",
    "CreateApiKeyRequest",
    "FailoverStrategy",
    "LoadBalancingStrategy",
    "BlogWriterRequest",
    "BlogWriterResponse",
    "HealthCheckResult",
    "MonitorMetrics",
    "SystemHealth",
    "ApiEnvironment",
    "ApiProvider",
    "ApiProviderType",
    "CreateApiProviderRequest",
    "HealthState",
    "UpdateApiProviderRequest",
    "ApiRequest",
    "ApiResponse",
    "ApiUsage",
    "ErrorCode",
    "ErrorResponse",
    "HealthResponse",
    "ManagementResponse",
    "PaginatedResponse",
    "ReadinessResponse",
    "ServiceStatus",
    "ServiceDefinition",
    "ServiceType",
    "UnifiedRequest",
    "UnifiedResponse",
]
