"""Health monitor results and rolled-up metrics."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from aigateway.models.provider import HealthState
from aigateway.models.response import utc_timestamp


class HealthCheckResult(BaseModel):
    service_id: str
    service_name: str
    status: HealthState
    response_time: float
    error_rate: float = 0.0
    availability: float = 0.0
    last_checked: str = Field(default_factory=utc_timestamp)
    error: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class MonitorMetrics(BaseModel):
    """Request outcome counters for one service. Rates are percentages."""

    service_id: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    error_rate: float = 0.0
    availability: float = 100.0
    last_request_time: str = Field(default_factory=utc_timestamp)
    uptime: float = 100.0


class SystemHealth(BaseModel):
    overall: HealthState
    services: Dict[str, HealthCheckResult] = Field(default_factory=dict)
    total_services: int = 0
    healthy_services: int = 0
    degraded_services: int = 0
    unhealthy_services: int = 0
    average_response_time: float = 0.0
    average_availability: float = 0.0
