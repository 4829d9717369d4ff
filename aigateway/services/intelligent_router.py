"""Routes provider-agnostic AI requests to the best registered service."""

import logging
import time
from typing import List, Optional

from aigateway.clients.service_client import ServiceClient
from aigateway.models.response import ErrorCode
from aigateway.models.routing import (
    ErrorInfo,
    Intent,
    ResponseMetadata,
    ServiceDefinition,
    ServiceEndpoint,
    ServiceType,
    UnifiedRequest,
    UnifiedResponse,
)
from aigateway.services.error_service import ErrorService
from aigateway.services.service_registry import ServiceRegistry
from aigateway.services.strategies import (
    CostOptimizer,
    LoadBalancer,
    PerformanceMonitor,
    RoutingError,
    estimate_tokens,
)
from aigateway.utils import generate_id

logger = logging.getLogger(__name__)

COMPONENT = "ai-router"

# Checked in order; the first list with a hit decides the intent
INTENT_KEYWORDS = [
    (ServiceType.BLOG_WRITING, ["blog", "article", "post", "content", "writing"]),
    (ServiceType.OUTREACH, ["email", "message", "outreach", "contact", "follow-up"]),
    (ServiceType.SEO, ["seo", "optimize", "keywords", "search", "ranking"]),
    (ServiceType.SOCIAL_MEDIA, ["social", "post", "caption", "hashtag", "instagram", "twitter"]),
]


class IntelligentRouter:
    """Intent analysis, filtering, scoring and dispatch over a ServiceRegistry."""

    def __init__(
        self,
        registry: ServiceRegistry,
        service_client: Optional[ServiceClient] = None,
        load_balancer: Optional[LoadBalancer] = None,
    ):
        self.registry = registry
        self.service_client = service_client or ServiceClient()
        self.load_balancer = load_balancer or LoadBalancer()
        self.cost_optimizer = CostOptimizer()
        self.performance_monitor = PerformanceMonitor(registry)

    async def route_request(self, request: UnifiedRequest) -> UnifiedResponse:
        """Pick a service for ``request``, call it and wrap the result.

        Never raises: every failure comes back as an unsuccessful
        UnifiedResponse with ``NO_COMPATIBLE_SERVICES`` or ``ROUTING_ERROR``.
        """
        try:
            intent = self.analyze_intent(request)
            services = self.find_compatible_services(intent, request)
            if not services:
                return self._error_response(
                    ErrorCode.NO_COMPATIBLE_SERVICES, "No services available for this request"
                )

            service = self.select_service(services, request)
            endpoint = self.load_balancer.select_endpoint(service)

            start = time.monotonic()
            data = await self._execute(endpoint, request)
            response_time = (time.monotonic() - start) * 1000

            self.performance_monitor.track_request(service.id, request, data, response_time)

            tokens = estimate_tokens(request.prompt)
            ErrorService.log_operation(
                COMPONENT,
                "route-request",
                additional_data={"service_id": service.id, "intent": intent.primary_intent.value},
            )
            return UnifiedResponse(
                success=True,
                data=data,
                metadata=ResponseMetadata(
                    service_used=service.id,
                    model=service.name,
                    response_time=response_time,
                    token_count=tokens,
                    cost=self._estimated_cost(service, tokens),
                    quality=service.capabilities.quality,
                    request_id=generate_id("req"),
                ),
            )
        except Exception as e:
            ErrorService.log_operation(COMPONENT, "route-request", success=False, error=str(e))
            return self._error_response(ErrorCode.ROUTING_ERROR, str(e) or "Unknown error")

    def analyze_intent(self, request: UnifiedRequest) -> Intent:
        prompt = request.prompt.lower()
        for service_type, keywords in INTENT_KEYWORDS:
            if any(keyword in prompt for keyword in keywords):
                return Intent(primary_intent=service_type, confidence=0.8)
        return Intent(primary_intent=ServiceType.CONTENT_GENERATION, confidence=0.5)

    def find_compatible_services(
        self, intent: Intent, request: UnifiedRequest
    ) -> List[ServiceDefinition]:
        constraints = request.constraints
        service_type = request.service_type or intent.primary_intent

        compatible = []
        for service in self.registry.get_healthy_services(service_type):
            if constraints.max_tokens and service.limits.max_tokens < constraints.max_tokens:
                continue
            if any(f not in service.metadata.special_features for f in constraints.required_features):
                continue
            if service.id in constraints.excluded_services:
                continue
            compatible.append(service)
        return compatible

    def select_service(
        self, services: List[ServiceDefinition], request: UnifiedRequest
    ) -> ServiceDefinition:
        """Highest weighted score wins; ties keep registration order."""
        if len(services) == 1:
            return services[0]
        return max(services, key=lambda s: self.score_service(s, request))

    def score_service(self, service: ServiceDefinition, request: UnifiedRequest) -> float:
        return (
            service.capabilities.quality.overall * 0.3
            + self._cost_score(service, request) * 0.25
            + self._performance_score(service) * 0.25
            + self._preference_score(service, request) * 0.2
        )

    @staticmethod
    def _estimated_cost(service: ServiceDefinition, tokens: int) -> float:
        return tokens * service.cost.input_tokens + tokens * service.cost.output_tokens

    def _cost_score(self, service: ServiceDefinition, request: UnifiedRequest) -> float:
        cost = self._estimated_cost(service, estimate_tokens(request.prompt))
        return max(0.0, 1 - cost / 10)

    def _performance_score(self, service: ServiceDefinition) -> float:
        metrics = self.registry.get_metrics(service.id)
        if metrics is None:
            return 0.5
        response_time_score = max(0.0, 1 - metrics.average_response_time / 5000)
        return (response_time_score + metrics.availability / 100) / 2

    @staticmethod
    def _preference_score(service: ServiceDefinition, request: UnifiedRequest) -> float:
        preferences = request.preferences
        score = 0.5
        if service.id in preferences.preferred_services:
            score += 0.3
        if preferences.cost_preference == "low" and service.cost.input_tokens < 0.01:
            score += 0.2
        elif (
            preferences.cost_preference == "high-quality"
            and service.capabilities.quality.overall > 0.8
        ):
            score += 0.2
        return min(1.0, score)

    async def _execute(self, endpoint: ServiceEndpoint, request: UnifiedRequest):
        auth = endpoint.authentication
        response = await self.service_client.send(
            "POST",
            endpoint.url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {auth.key or auth.token or ''}",
            },
            json_data={
                "prompt": request.prompt,
                "context": request.context.model_dump(),
                "options": request.options.model_dump(),
            },
        )
        if not response.is_success:
            raise RoutingError(f"Service request failed: {response.status_code} {response.reason_phrase}")
        return response.json()

    @staticmethod
    def _error_response(code: ErrorCode, message: str) -> UnifiedResponse:
        return UnifiedResponse(
            success=False,
            error=ErrorInfo(code=code.value, message=message),
            metadata=ResponseMetadata(
                service_used="",
                model="",
                response_time=0,
                token_count=0,
                cost=0,
                request_id=generate_id("req"),
            ),
        )
