"""Core services for the AI gateway."""

from aigateway.services.api_manager import ApiManager
from aigateway.services.error_service import ErrorService
from aigateway.services.health_monitor import HealthMonitor
from aigateway.services.intelligent_router import IntelligentRouter
from aigateway.services.jwt_service import JWTService
from aigateway.services.rate_limit_service import RateLimiter, RateLimitService, RateLimitStore
from aigateway.services.service_registry import ServiceRegistry

__all__ = [
    "ApiManager",
    "ErrorService",
    "HealthMonitor",
    "IntelligentRouter",
    "JWTService",
    "RateLimiter",
    "RateLimitService",
    "RateLimitStore",
    "ServiceRegistry",
]
