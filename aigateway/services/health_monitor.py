"""Periodic health checks and request outcome metrics for registered services."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from aigateway.clients.service_client import ServiceClient
from aigateway.models.health import HealthCheckResult, MonitorMetrics, SystemHealth
from aigateway.models.provider import HealthState
from aigateway.models.response import utc_timestamp
from aigateway.models.routing import HealthStatus
from aigateway.services.error_service import ErrorService
from aigateway.services.service_registry import ServiceRegistry

logger = logging.getLogger(__name__)

COMPONENT = "health-monitor"

# Provider specific probe: returns the provider's health payload or raises
HealthChecker = Callable[[], Awaitable[Dict[str, Any]]]


class HealthMonitor:
    """Polls every service in a registry and keeps per-service metrics."""

    def __init__(
        self,
        registry: ServiceRegistry,
        service_client: Optional[ServiceClient] = None,
        checkers: Optional[Dict[str, HealthChecker]] = None,
        check_timeout: float = 5.0,
    ):
        """Initialize the monitor.

        Args:
            registry: Registry whose services are checked and updated
            service_client: Client for generic health probes
            checkers: Provider specific probes keyed by service id
            check_timeout: Timeout of a generic probe in seconds
        """
        self.registry = registry
        self.service_client = service_client or ServiceClient(timeout=check_timeout)
        self.checkers: Dict[str, HealthChecker] = dict(checkers or {})
        self.check_timeout = check_timeout
        self.health_checks: Dict[str, HealthCheckResult] = {}
        self.metrics: Dict[str, MonitorMetrics] = {}
        self._task: Optional[asyncio.Task] = None

        for service in registry.list_services():
            self._ensure_metrics(service.id)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def register_checker(self, service_id: str, checker: HealthChecker):
        self.checkers[service_id] = checker

    async def start(self, interval: float = 30):
        """Run a check pass now and then every ``interval`` seconds."""
        if self.is_running:
            logger.warning("Health monitor is already running")
            return

        self._task = asyncio.create_task(self._monitor_loop(interval))
        ErrorService.log_operation(
            COMPONENT,
            "start",
            additional_data={
                "interval_seconds": interval,
                "services_count": len(self.registry.list_services()),
            },
        )

    async def stop(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            ErrorService.log_operation(COMPONENT, "stop")

    async def _monitor_loop(self, interval: float):
        while True:
            try:
                await self.perform_health_checks()
            except Exception as e:
                logger.error(f"Error in health monitor loop: {e}")
            await asyncio.sleep(interval)

    async def perform_health_checks(self):
        """Check every registered service, one failure never stopping the rest."""
        for service in self.registry.list_services():
            try:
                await self.check_service(service.id)
            except Exception as e:
                ErrorService.log_operation(
                    COMPONENT,
                    "perform-health-checks",
                    success=False,
                    error=str(e),
                    additional_data={"service_id": service.id},
                )

    async def check_service(self, service_id: str) -> HealthCheckResult:
        """Run one immediate health check and publish its result."""
        start = time.monotonic()
        status = HealthState.UNHEALTHY
        error: Optional[str] = None
        details: Dict[str, Any] = {}

        try:
            checker = self.checkers.get(service_id)
            if checker is not None:
                details = await checker() or {}
                if details.get("status") == "healthy":
                    status = HealthState.HEALTHY
            else:
                service = self.registry.get_service(service_id)
                if service and service.endpoints:
                    endpoint = service.endpoints[0]
                    response = await self.service_client.send(
                        "GET",
                        f"{endpoint.url}{endpoint.health_check.endpoint}",
                        timeout=self.check_timeout,
                    )
                    if response.is_success:
                        status = HealthState.HEALTHY
                    details = {"status_code": response.status_code}
        except Exception as e:
            status = HealthState.UNHEALTHY
            error = str(e) or "Health check failed"

        response_time = (time.monotonic() - start) * 1000
        metrics = self.metrics.get(service_id)
        service = self.registry.get_service(service_id)

        result = HealthCheckResult(
            service_id=service_id,
            service_name=service.name if service else service_id,
            status=status,
            response_time=response_time,
            error_rate=metrics.error_rate if metrics else 0.0,
            availability=metrics.availability if metrics else 0.0,
            error=error,
            details=details,
        )
        self.health_checks[service_id] = result

        self.registry.update_health_status(
            service_id,
            HealthStatus(
                status=status,
                response_time=response_time,
                error_rate=result.error_rate,
                availability=result.availability,
                last_checked=result.last_checked,
            ),
        )

        if status != HealthState.HEALTHY:
            logger.error(f"Service {service_id} health check failed: {error or details}")
        return result

    def _ensure_metrics(self, service_id: str) -> MonitorMetrics:
        if service_id not in self.metrics:
            self.metrics[service_id] = MonitorMetrics(service_id=service_id)
        return self.metrics[service_id]

    def _record(self, service_id: str, response_time: float, success: bool):
        metrics = self._ensure_metrics(service_id)
        metrics.total_requests += 1
        if success:
            metrics.successful_requests += 1
        else:
            metrics.failed_requests += 1
        metrics.average_response_time = (metrics.average_response_time + response_time) / 2
        metrics.error_rate = metrics.failed_requests / metrics.total_requests * 100
        metrics.availability = metrics.successful_requests / metrics.total_requests * 100
        metrics.last_request_time = utc_timestamp()

    def record_success(self, service_id: str, response_time: float):
        self._record(service_id, response_time, success=True)

    def record_failure(self, service_id: str, response_time: float, error: Optional[str] = None):
        self._record(service_id, response_time, success=False)
        ErrorService.log_operation(
            COMPONENT,
            "record-failure",
            success=False,
            error=error,
            additional_data={"service_id": service_id, "response_time": response_time},
        )

    def get_service_health(self, service_id: str) -> Optional[HealthCheckResult]:
        return self.health_checks.get(service_id)

    def get_all_health_status(self) -> List[HealthCheckResult]:
        return list(self.health_checks.values())

    def get_service_metrics(self, service_id: str) -> Optional[MonitorMetrics]:
        return self.metrics.get(service_id)

    def get_all_metrics(self) -> List[MonitorMetrics]:
        return list(self.metrics.values())

    def get_system_health(self) -> SystemHealth:
        """Roll the latest check of every service into one status."""
        results = list(self.health_checks.values())
        total = len(results)
        healthy = sum(1 for r in results if r.status == HealthState.HEALTHY)
        degraded = sum(1 for r in results if r.status == HealthState.DEGRADED)
        unhealthy = sum(1 for r in results if r.status == HealthState.UNHEALTHY)

        if healthy == 0:
            overall = HealthState.UNHEALTHY
        elif degraded > 0 or healthy < total:
            overall = HealthState.DEGRADED
        else:
            overall = HealthState.HEALTHY

        return SystemHealth(
            overall=overall,
            services={r.service_id: r for r in results},
            total_services=total,
            healthy_services=healthy,
            degraded_services=degraded,
            unhealthy_services=unhealthy,
            average_response_time=sum(r.response_time for r in results) / total if total else 0.0,
            average_availability=sum(r.availability for r in results) / total if total else 0.0,
        )

    async def close(self):
        await self.stop()
        await self.service_client.close()
