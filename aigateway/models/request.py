"""Per-call value objects for requests proxied by the ApiManager."""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from aigateway.models.response import utc_timestamp

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


class ApiRequest(BaseModel):
    """One call to forward to a provider environment."""

    id: str
    provider_id: Optional[str] = None
    environment_id: str = ""
    endpoint: str
    method: HttpMethod = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    query_params: Optional[Dict[str, str]] = None
    timestamp: str = Field(default_factory=utc_timestamp)
    user_id: str
    api_key_id: Optional[str] = None


class ApiResponse(BaseModel):
    """Outcome of a forwarded call. ``response_time`` is in milliseconds."""

    id: str
    request_id: str
    provider_id: Optional[str] = None
    environment_id: Optional[str] = None
    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    response_time: float
    timestamp: str = Field(default_factory=utc_timestamp)
    success: bool
    error: Optional[str] = None


class ApiUsage(BaseModel):
    """Rolling counters per (provider, environment, user)."""

    id: str
    provider_id: str
    environment_id: str
    user_id: str
    api_key_id: Optional[str] = None
    endpoint: str
    method: str
    request_count: int = 0
    token_count: int = 0
    cost: float = 0.0
    success_count: int = 0
    error_count: int = 0
    average_response_time: float = 0.0
    period: Literal["minute", "hour", "day", "month"] = "minute"
    timestamp: str = Field(default_factory=utc_timestamp)
