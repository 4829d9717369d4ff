"""Selection and accounting helpers shared by the routers."""

import logging
import math
import random
from typing import Any, Dict, List, Optional, Sequence

from aigateway.models.access import LoadBalancingStrategy
from aigateway.models.provider import ApiProvider, HealthState
from aigateway.models.routing import ServiceDefinition, ServiceEndpoint, UnifiedRequest
from aigateway.services.service_registry import ServiceRegistry

logger = logging.getLogger(__name__)

COST_PER_TOKEN = 0.001


class RoutingError(Exception):
    """Raised when a request cannot be dispatched to any target."""


def estimate_tokens(text: str) -> int:
    """Rough token count: four characters per token."""
    return math.ceil(len(text) / 4)


class LoadBalancer:
    """Picks an endpoint of a service."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def select_endpoint(self, service: ServiceDefinition) -> ServiceEndpoint:
        healthy = [e for e in service.endpoints if self.is_endpoint_healthy(service.id, e)]
        if not healthy:
            raise RoutingError(f"No healthy endpoints available for service {service.id}")
        return self._rng.choice(healthy)

    def is_endpoint_healthy(self, service_id: str, endpoint: ServiceEndpoint) -> bool:
        # Endpoint-level health is not tracked; only whole services are checked.
        return True


class CostOptimizer:
    def optimize_cost(
        self, services: Sequence[ServiceDefinition], request: UnifiedRequest
    ) -> ServiceDefinition:
        """Service with the best quality per unit of estimated cost."""
        if not services:
            raise RoutingError("No services to optimize")

        tokens = estimate_tokens(request.prompt)

        def value(service: ServiceDefinition) -> float:
            cost = tokens * service.cost.input_tokens + tokens * service.cost.output_tokens
            if cost <= 0:
                return math.inf
            efficiency = service.capabilities.quality.overall / cost
            return efficiency / cost

        # max() keeps the first of equal values
        return max(services, key=value)


class PerformanceMonitor:
    """Feeds request outcomes back into the registry's metrics."""

    def __init__(self, registry: ServiceRegistry):
        self.registry = registry

    def track_request(
        self,
        service_id: str,
        request: UnifiedRequest,
        response: Any,
        response_time: float,
    ):
        metrics = self.registry.get_metrics(service_id)
        if metrics is None:
            return

        self.registry.update_metrics(
            service_id,
            {
                "request_count": metrics.request_count + 1,
                "average_response_time": (metrics.average_response_time + response_time) / 2,
                "total_cost": metrics.total_cost + estimate_tokens(request.prompt) * COST_PER_TOKEN,
            },
        )


class ProviderSelector:
    """Chooses one provider out of the candidates for a request.

    Round-robin cursors are kept per policy key so that two assignments do
    not advance each other.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._cursors: Dict[str, int] = {}

    def select(
        self,
        providers: List[ApiProvider],
        strategy: Optional[LoadBalancingStrategy] = None,
        policy_key: str = "default",
        in_flight: Optional[Dict[str, int]] = None,
    ) -> Optional[ApiProvider]:
        if not providers:
            return None
        strategy = strategy or LoadBalancingStrategy()

        if strategy.type == "random":
            return self._rng.choice(providers)
        if strategy.type == "health-based":
            return self._healthiest(providers)
        if strategy.type == "weighted":
            weights = [max(0.0, strategy.weights.get(p.id, 1.0)) for p in providers]
            if sum(weights) <= 0:
                return providers[0]
            return self._rng.choices(providers, weights=weights, k=1)[0]
        if strategy.type == "least-connections":
            counts = in_flight or {}
            return min(providers, key=lambda p: counts.get(p.id, 0))
        return self._next_in_rotation(providers, policy_key)

    def _next_in_rotation(self, providers: List[ApiProvider], policy_key: str) -> ApiProvider:
        cursor = self._cursors.get(policy_key, 0)
        self._cursors[policy_key] = cursor + 1
        return providers[cursor % len(providers)]

    @staticmethod
    def _healthiest(providers: List[ApiProvider]) -> ApiProvider:
        best = providers[0]
        for provider in providers[1:]:
            if (
                provider.status.health_status == HealthState.HEALTHY
                and provider.status.average_response_time < best.status.average_response_time
            ):
                best = provider
        return best
