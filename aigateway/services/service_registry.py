"""In-memory catalog of AI services known to the intelligent router."""

import logging
from typing import Any, Dict, List, Optional

from aigateway.models.provider import HealthState
from aigateway.models.routing import HealthStatus, ServiceDefinition, ServiceMetrics, ServiceType
from aigateway.models.response import utc_timestamp

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Service definitions with their latest health and metrics."""

    def __init__(self):
        self._services: Dict[str, ServiceDefinition] = {}
        self._health: Dict[str, HealthStatus] = {}
        self._metrics: Dict[str, ServiceMetrics] = {}

    def register(self, service: ServiceDefinition):
        """Add or replace a service; it starts healthy with fresh metrics."""
        self._services[service.id] = service
        self._health[service.id] = HealthStatus(
            status=HealthState.HEALTHY,
            response_time=0.0,
            error_rate=0.0,
            availability=100.0,
        )
        self._metrics[service.id] = ServiceMetrics(
            quality_score=service.capabilities.quality.overall,
        )
        logger.info(f"Registered service: {service.id} ({service.type.value})")

    def list_services(self) -> List[ServiceDefinition]:
        return list(self._services.values())

    def get_service(self, service_id: str) -> Optional[ServiceDefinition]:
        return self._services.get(service_id)

    def get_services_by_type(self, service_type: ServiceType) -> List[ServiceDefinition]:
        return [service for service in self._services.values() if service.type == service_type]

    def get_healthy_services(
        self, service_type: Optional[ServiceType] = None
    ) -> List[ServiceDefinition]:
        """Services currently healthy, optionally of one type, in registration order."""
        services = (
            self.get_services_by_type(service_type) if service_type else self.list_services()
        )
        return [
            service
            for service in services
            if self._health.get(service.id)
            and self._health[service.id].status == HealthState.HEALTHY
        ]

    def get_health_status(self, service_id: str) -> Optional[HealthStatus]:
        return self._health.get(service_id)

    def update_health_status(self, service_id: str, health: HealthStatus):
        self._health[service_id] = health

    def update_metrics(self, service_id: str, partial: Dict[str, Any]):
        """Shallow-merge ``partial`` into the service's metrics. Unknown ids are ignored."""
        current = self._metrics.get(service_id)
        if current is None:
            return
        self._metrics[service_id] = current.model_copy(
            update={**partial, "last_updated": partial.get("last_updated", utc_timestamp())}
        )

    def get_metrics(self, service_id: str) -> Optional[ServiceMetrics]:
        return self._metrics.get(service_id)
