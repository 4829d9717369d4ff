"""Models used by the intelligent router and its service registry."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from aigateway.models.provider import HealthState, QualityMetrics
from aigateway.models.response import utc_timestamp


class ServiceType(str, Enum):
    BLOG_WRITING = "blog-writing"
    OUTREACH = "outreach"
    SEO = "seo"
    SOCIAL_MEDIA = "social-media"
    CONTENT_GENERATION = "content-generation"
    CODE_GENERATION = "code-generation"
    IMAGE_GENERATION = "image-generation"


class AuthConfig(BaseModel):
    type: Literal["api-key", "bearer", "oauth"] = "api-key"
    key: Optional[str] = None
    token: Optional[str] = None


class EndpointRateLimits(BaseModel):
    requests_per_minute: int = 60
    tokens_per_minute: int = 100000


class EndpointHealthCheck(BaseModel):
    endpoint: str = "/health"
    interval_ms: int = 30000


class ServiceEndpoint(BaseModel):
    url: str
    authentication: AuthConfig = Field(default_factory=AuthConfig)
    rate_limits: EndpointRateLimits = Field(default_factory=EndpointRateLimits)
    health_check: EndpointHealthCheck = Field(default_factory=EndpointHealthCheck)


class CostStructure(BaseModel):
    """Per-token rates."""

    input_tokens: float = 0.0
    output_tokens: float = 0.0
    base_cost: Optional[float] = None
    currency: str = "USD"


class ServiceLimits(BaseModel):
    max_tokens: int = 4000
    max_requests_per_minute: int = 60
    supported_languages: List[str] = Field(default_factory=list)


class ServiceMetadata(BaseModel):
    provider: str = ""
    version: str = "1.0.0"
    description: str = ""
    special_features: List[str] = Field(default_factory=list)


class ServiceCapabilities(BaseModel):
    supported_formats: List[str] = Field(default_factory=list)
    max_tokens: int = 4000
    supported_languages: List[str] = Field(default_factory=list)
    special_features: List[str] = Field(default_factory=list)
    quality: QualityMetrics = Field(default_factory=QualityMetrics)


class ServiceDefinition(BaseModel):
    """An AI service the intelligent router can dispatch to."""

    id: str
    name: str
    type: ServiceType
    capabilities: ServiceCapabilities = Field(default_factory=ServiceCapabilities)
    endpoints: List[ServiceEndpoint] = Field(default_factory=list)
    cost: CostStructure = Field(default_factory=CostStructure)
    limits: ServiceLimits = Field(default_factory=ServiceLimits)
    metadata: ServiceMetadata = Field(default_factory=ServiceMetadata)


class HealthStatus(BaseModel):
    status: HealthState = HealthState.HEALTHY
    response_time: float = 0.0
    error_rate: float = 0.0
    availability: float = 100.0
    last_checked: str = Field(default_factory=utc_timestamp)


class ServiceMetrics(BaseModel):
    request_count: int = 0
    average_response_time: float = 0.0
    error_rate: float = 0.0
    availability: float = 100.0
    total_cost: float = 0.0
    quality_score: float = 0.0
    last_updated: str = Field(default_factory=utc_timestamp)


class RequestHistory(BaseModel):
    id: str
    service_type: ServiceType
    timestamp: str
    success: bool
    quality: Optional[float] = None


class RequestContext(BaseModel):
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    session_id: Optional[str] = None
    brand_voice: Optional[str] = None
    target_audience: Optional[str] = None
    previous_requests: List[RequestHistory] = Field(default_factory=list)


class UserPreferences(BaseModel):
    preferred_services: List[str] = Field(default_factory=list)
    cost_preference: Literal["low", "balanced", "high-quality"] = "balanced"
    quality_preference: Literal["fast", "balanced", "best"] = "balanced"
    language: str = "en"
    style: Optional[str] = None


class RequestConstraints(BaseModel):
    max_cost: Optional[float] = None
    max_tokens: Optional[int] = None
    max_response_time: Optional[int] = None
    required_features: List[str] = Field(default_factory=list)
    excluded_services: List[str] = Field(default_factory=list)


class RequestOptions(BaseModel):
    stream: bool = False
    format: Literal["text", "json", "markdown", "html"] = "text"
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    model: Optional[str] = None


class UnifiedRequest(BaseModel):
    """Provider-agnostic request accepted by ``/api/v1/ai/process``."""

    prompt: str = Field(min_length=1)
    context: RequestContext = Field(default_factory=RequestContext)
    service_type: Optional[ServiceType] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    constraints: RequestConstraints = Field(default_factory=RequestConstraints)
    options: RequestOptions = Field(default_factory=RequestOptions)


class ResponseMetadata(BaseModel):
    service_used: str
    model: str
    response_time: float
    token_count: int
    cost: float
    quality: QualityMetrics = Field(default_factory=QualityMetrics)
    request_id: str
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None
    retryable: bool = False


class AlternativeResponse(BaseModel):
    service_id: str
    data: Any = None
    quality: float
    cost: float


class UnifiedResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    metadata: Optional[ResponseMetadata] = None
    alternatives: Optional[List[AlternativeResponse]] = None
    error: Optional[ErrorInfo] = None


class Intent(BaseModel):
    primary_intent: ServiceType
    secondary_intents: List[ServiceType] = Field(default_factory=list)
    confidence: float
    requirements: Dict[str, Any] = Field(default_factory=dict)
