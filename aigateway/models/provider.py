"""Provider catalog models managed by the ApiManager."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from aigateway.models.response import utc_timestamp


class HealthState(str, Enum):
    """Health of a provider, environment or registered service."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ApiProviderType(str, Enum):
    """Content generation categories a provider can serve."""

    BLOG_WRITING = "blog-writing"
    CONTENT_GENERATION = "content-generation"
    SEO_OPTIMIZATION = "seo-optimization"
    KEYWORD_RESEARCH = "keyword-research"
    OUTREACH = "outreach"
    SOCIAL_MEDIA = "social-media"
    CODE_GENERATION = "code-generation"
    IMAGE_GENERATION = "image-generation"
    VIDEO_GENERATION = "video-generation"
    TRANSLATION = "translation"
    SUMMARIZATION = "summarization"


class QualityMetrics(BaseModel):
    relevance: float = 0.0
    coherence: float = 0.0
    creativity: float = 0.0
    accuracy: float = 0.0
    overall: float = 0.0


class HealthCheckConfig(BaseModel):
    """How an environment is probed. Times are milliseconds."""

    endpoint: str = "/health"
    interval_ms: int = 30000
    timeout_ms: int = 5000
    expected_status: int = 200
    expected_response: Optional[Dict[str, Any]] = None


class EnvironmentRateLimits(BaseModel):
    requests_per_minute: int = 60
    requests_per_hour: int = 1000
    requests_per_day: int = 10000
    burst_limit: int = 10


class EnvironmentCreate(BaseModel):
    """Environment fields supplied by the caller."""

    name: str
    base_url: str
    is_active: bool = True
    priority: int = 1
    health_check: HealthCheckConfig = Field(default_factory=HealthCheckConfig)
    rate_limits: EnvironmentRateLimits = Field(default_factory=EnvironmentRateLimits)
    timeout_ms: int = 30000
    retry_attempts: int = 3


class ApiEnvironment(EnvironmentCreate):
    """A named deployment of a provider."""

    id: str
    last_health_check: Optional[str] = None
    health_status: HealthState = HealthState.UNHEALTHY


class OAuthConfig(BaseModel):
    client_id: str
    client_secret: str
    token_url: str
    scope: List[str] = Field(default_factory=list)
    grant_type: Literal["client_credentials", "authorization_code"] = "client_credentials"


class CredentialsInput(BaseModel):
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    bearer_token: Optional[str] = None
    oauth_config: Optional[OAuthConfig] = None
    custom_headers: Dict[str, str] = Field(default_factory=dict)


class ApiCredentials(CredentialsInput):
    encrypted: bool = False


class ApiCapabilities(BaseModel):
    supported_endpoints: List[str] = Field(default_factory=list)
    supported_formats: List[str] = Field(default_factory=list)
    max_tokens: int = 4000
    supported_languages: List[str] = Field(default_factory=list)
    special_features: List[str] = Field(default_factory=list)
    quality: QualityMetrics = Field(default_factory=QualityMetrics)


class ApiLimits(BaseModel):
    max_requests_per_minute: int = 60
    max_requests_per_hour: int = 1000
    max_requests_per_day: int = 10000
    max_tokens_per_request: int = 4000
    max_concurrent_requests: int = 10
    cost_per_token: float = 0.001
    currency: str = "USD"


class ApiMetadata(BaseModel):
    provider: str = ""
    version: str = "1.0.0"
    description: str = ""
    documentation: str = ""
    support_contact: str = ""
    tags: List[str] = Field(default_factory=list)


class ApiStatus(BaseModel):
    """Mutable status block, updated by health checks and request outcomes."""

    is_active: bool = True
    last_health_check: str = Field(default_factory=utc_timestamp)
    health_status: HealthState = HealthState.UNHEALTHY
    error_rate: float = 0.0
    average_response_time: float = 0.0
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0


class ApiProvider(BaseModel):
    id: str
    name: str
    type: ApiProviderType
    environments: List[ApiEnvironment] = Field(default_factory=list)
    credentials: ApiCredentials = Field(default_factory=ApiCredentials)
    capabilities: ApiCapabilities = Field(default_factory=ApiCapabilities)
    limits: ApiLimits = Field(default_factory=ApiLimits)
    metadata: ApiMetadata = Field(default_factory=ApiMetadata)
    status: ApiStatus = Field(default_factory=ApiStatus)
    created_at: str = Field(default_factory=utc_timestamp)
    updated_at: str = Field(default_factory=utc_timestamp)


class CreateApiProviderRequest(BaseModel):
    name: str = Field(min_length=1)
    type: ApiProviderType
    environments: List[EnvironmentCreate] = Field(min_length=1)
    credentials: CredentialsInput = Field(default_factory=CredentialsInput)
    capabilities: ApiCapabilities = Field(default_factory=ApiCapabilities)
    limits: ApiLimits = Field(default_factory=ApiLimits)
    metadata: ApiMetadata = Field(default_factory=ApiMetadata)


class UpdateApiProviderRequest(BaseModel):
    """Partial update. Nested blocks are merged key by key.

    Environment entries carrying an ``id`` patch that environment; entries
    without one are added as new environments.
    """

    name: Optional[str] = None
    environments: Optional[List[Dict[str, Any]]] = None
    credentials: Optional[Dict[str, Any]] = None
    capabilities: Optional[Dict[str, Any]] = None
    limits: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
