"""API keys and assignments: user-created routing policies."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from aigateway.models.provider import EnvironmentRateLimits

StrategyType = Literal["round-robin", "weighted", "least-connections", "random", "health-based"]


class LoadBalancingStrategy(BaseModel):
    type: StrategyType = "round-robin"
    weights: Dict[str, float] = Field(default_factory=dict)
    health_threshold: Optional[float] = None


class FailoverStrategy(BaseModel):
    type: Literal["immediate", "delayed", "circuit-breaker"] = "immediate"
    delay_ms: Optional[int] = None
    failure_threshold: Optional[int] = None
    recovery_timeout: Optional[int] = None


class ApiKey(BaseModel):
    id: str
    name: str
    key: str
    key_prefix: str
    user_id: str
    provider_ids: List[str] = Field(default_factory=list)
    environment_ids: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
    rate_limits: EnvironmentRateLimits = Field(default_factory=EnvironmentRateLimits)
    is_active: bool = True
    # Stored only; nothing checks it before authorizing a request.
    expires_at: Optional[str] = None
    last_used_at: Optional[str] = None
    created_at: str
    updated_at: str


class CreateApiKeyRequest(BaseModel):
    name: str = Field(min_length=1)
    provider_ids: List[str] = Field(min_length=1)
    environment_ids: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
    rate_limits: EnvironmentRateLimits = Field(default_factory=EnvironmentRateLimits)
    expires_at: Optional[str] = None


class ApiAssignment(BaseModel):
    id: str
    name: str
    description: str = ""
    user_id: str
    provider_ids: List[str] = Field(default_factory=list)
    environment_ids: List[str] = Field(default_factory=list)
    load_balancing_strategy: LoadBalancingStrategy = Field(default_factory=LoadBalancingStrategy)
    failover_strategy: FailoverStrategy = Field(default_factory=FailoverStrategy)
    rate_limits: EnvironmentRateLimits = Field(default_factory=EnvironmentRateLimits)
    is_active: bool = True
    created_at: str
    updated_at: str


class CreateApiAssignmentRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    provider_ids: List[str] = Field(min_length=1)
    environment_ids: List[str] = Field(default_factory=list)
    load_balancing_strategy: LoadBalancingStrategy = Field(default_factory=LoadBalancingStrategy)
    failover_strategy: FailoverStrategy = Field(default_factory=FailoverStrategy)
    rate_limits: EnvironmentRateLimits = Field(default_factory=EnvironmentRateLimits)
