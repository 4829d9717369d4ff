"""Tests for the periodic health monitor."""

import asyncio

import httpx
import pytest
import pytest_asyncio

from aigateway.clients.service_client import ServiceClient
from aigateway.models.provider import HealthState
from aigateway.models.routing import ServiceDefinition, ServiceEndpoint, ServiceType
from aigateway.services.health_monitor import HealthMonitor
from aigateway.services.service_registry import ServiceRegistry


def probe_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "up.example.com":
        return httpx.Response(200, json={"status": "ok"})
    if request.url.host == "down.example.com":
        return httpx.Response(500)
    raise httpx.ConnectError("unreachable", request=request)


def make_service(service_id: str, url: str) -> ServiceDefinition:
    return ServiceDefinition(
        id=service_id,
        name=service_id,
        type=ServiceType.CONTENT_GENERATION,
        endpoints=[ServiceEndpoint(url=url)],
    )


@pytest.fixture
def registry():
    registry = ServiceRegistry()
    registry.register(make_service("up", "https://up.example.com"))
    registry.register(make_service("down", "https://down.example.com"))
    return registry


@pytest_asyncio.fixture
async def monitor(registry):
    client = ServiceClient(timeout=1, transport=httpx.MockTransport(probe_handler))
    monitor = HealthMonitor(registry, service_client=client, check_timeout=1)
    yield monitor
    await monitor.close()


@pytest.mark.asyncio
async def test_generic_probe_results(monitor, registry):
    await monitor.perform_health_checks()

    assert monitor.get_service_health("up").status == HealthState.HEALTHY
    assert monitor.get_service_health("down").status == HealthState.UNHEALTHY
    assert monitor.get_service_health("down").details == {"status_code": 500}
    assert registry.get_health_status("down").status == HealthState.UNHEALTHY
    assert [s.id for s in registry.get_healthy_services()] == ["up"]


@pytest.mark.asyncio
async def test_unreachable_service_records_error(registry):
    registry.register(make_service("gone", "https://gone.example.com"))
    client = ServiceClient(timeout=1, transport=httpx.MockTransport(probe_handler))
    monitor = HealthMonitor(registry, service_client=client)

    result = await monitor.check_service("gone")

    assert result.status == HealthState.UNHEALTHY
    assert "unreachable" in result.error
    await monitor.close()


@pytest.mark.asyncio
async def test_custom_checker(monitor):
    async def degraded():
        return {"status": "degraded", "queue": 12}

    async def healthy():
        return {"status": "healthy"}

    monitor.register_checker("up", degraded)
    monitor.register_checker("down", healthy)

    assert (await monitor.check_service("up")).status == HealthState.UNHEALTHY
    result = await monitor.check_service("down")
    assert result.status == HealthState.HEALTHY
    assert result.details == {"status": "healthy"}


@pytest.mark.asyncio
async def test_checker_exception_marks_unhealthy(monitor):
    async def broken():
        raise RuntimeError("probe exploded")

    monitor.register_checker("up", broken)
    result = await monitor.check_service("up")

    assert result.status == HealthState.UNHEALTHY
    assert result.error == "probe exploded"


@pytest.mark.asyncio
async def test_system_health_rollup(monitor):
    assert monitor.get_system_health().overall == HealthState.UNHEALTHY

    await monitor.perform_health_checks()
    system = monitor.get_system_health()

    assert system.overall == HealthState.DEGRADED
    assert system.total_services == 2
    assert system.healthy_services == 1
    assert system.unhealthy_services == 1


@pytest.mark.asyncio
async def test_system_health_all_healthy(monitor):
    await monitor.check_service("up")
    assert monitor.get_system_health().overall == HealthState.HEALTHY


def test_record_success_and_failure(registry):
    monitor = HealthMonitor(registry)
    monitor.record_success("up", 100.0)
    monitor.record_success("up", 300.0)
    monitor.record_failure("up", 200.0, "timeout")

    metrics = monitor.get_service_metrics("up")
    assert metrics.total_requests == 3
    assert metrics.successful_requests == 2
    assert metrics.failed_requests == 1
    # Each sample is averaged with the previous mean: 0 -> 50 -> 175 -> 187.5
    assert metrics.average_response_time == 187.5
    assert metrics.error_rate == pytest.approx(100 / 3)
    assert metrics.availability == pytest.approx(200 / 3)


def test_metrics_created_for_unknown_service(registry):
    monitor = HealthMonitor(registry)
    monitor.record_failure("new-service", 50.0)
    assert monitor.get_service_metrics("new-service").error_rate == 100.0
    assert len(monitor.get_all_metrics()) == 3


@pytest.mark.asyncio
async def test_start_and_stop(monitor):
    await monitor.start(interval=60)
    assert monitor.is_running

    # Second start is a no-op
    await monitor.start(interval=60)

    # The first pass runs right away
    for _ in range(50):
        if monitor.get_service_health("up"):
            break
        await asyncio.sleep(0.01)
    assert monitor.get_service_health("up").status == HealthState.HEALTHY

    await monitor.stop()
    assert not monitor.is_running


@pytest.mark.asyncio
async def test_failing_checker_does_not_stop_the_pass(monitor, registry):
    async def broken():
        raise RuntimeError("probe exploded")

    registry.register(make_service("later", "https://up.example.com"))
    monitor.register_checker("up", broken)

    await monitor.perform_health_checks()

    assert monitor.get_service_health("up").status == HealthState.UNHEALTHY
    assert monitor.get_service_health("up").error == "probe exploded"
    assert monitor.get_service_health("down").details == {"status_code": 500}
    assert monitor.get_service_health("later").status == HealthState.HEALTHY
    assert [s.id for s in registry.get_healthy_services()] == ["later"]
