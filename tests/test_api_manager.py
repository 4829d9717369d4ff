"""Tests for the provider catalog, API keys, assignments and routing."""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from aigateway.clients.service_client import ServiceClient
from aigateway.models.access import CreateApiAssignmentRequest, CreateApiKeyRequest
from aigateway.models.provider import (
    ApiProviderType,
    CreateApiProviderRequest,
    HealthState,
    UpdateApiProviderRequest,
)
from aigateway.models.request import ApiRequest, ApiResponse
from aigateway.services.api_manager import ApiManager


class Upstream:
    def __init__(self):
        self.requests = []
        self.down_hosts = set()
        self.failing_hosts = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.down_hosts:
            raise httpx.ConnectError("Connection refused", request=request)
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "healthy"})
        if host in self.failing_hosts:
            return httpx.Response(500, json={"message": "boom"})
        return httpx.Response(200, json={"host": host, "path": request.url.path})

    def hosts(self, path: str):
        return [r.url.host for r in self.requests if r.url.path == path]


def provider_request(name="Writer", hosts=("primary.example.com",), **extra):
    return CreateApiProviderRequest.model_validate(
        {
            "name": name,
            "type": "blog-writing",
            "environments": [
                {"name": host.split(".")[0], "base_url": f"https://{host}", "priority": i + 1}
                for i, host in enumerate(hosts)
            ],
            "credentials": {"api_key": f"{name.lower()}-secret"},
            **extra,
        }
    )


@pytest.fixture
def upstream():
    return Upstream()


@pytest_asyncio.fixture
async def manager(upstream):
    client = ServiceClient(timeout=5, transport=httpx.MockTransport(upstream))
    manager = ApiManager(service_client=client, health_check_interval=3600)
    yield manager
    await manager.close()


async def create_healthy(manager, **kwargs):
    result = await manager.create_provider(provider_request(**kwargs))
    await manager.perform_health_check(result.data.id)
    return result.data


def api_request(endpoint="/api/v1/generate", body=None, provider_id=None, user_id="user-1"):
    return ApiRequest(
        id="req-1",
        provider_id=provider_id,
        endpoint=endpoint,
        body=body if body is not None else {"topic": "tea"},
        user_id=user_id,
    )


# Providers


@pytest.mark.asyncio
async def test_create_provider(manager):
    result = await manager.create_provider(provider_request())

    assert result.success is True
    assert result.message == "Provider created successfully"
    provider = result.data
    assert provider.id.startswith("api_")
    assert provider.credentials.encrypted is True
    assert provider.status.health_status == HealthState.UNHEALTHY
    assert provider.environments[0].id.startswith("api_")
    assert provider.environments[0].health_status == HealthState.UNHEALTHY


@pytest.mark.asyncio
async def test_get_list_and_delete_provider(manager):
    created = (await manager.create_provider(provider_request())).data
    await manager.create_provider(
        provider_request(name="Seo", hosts=("seo.example.com",)).model_copy(
            update={"type": ApiProviderType.SEO_OPTIMIZATION}
        )
    )

    assert (await manager.get_provider(created.id)).data is created
    assert len((await manager.list_providers()).data) == 2
    assert len((await manager.list_providers(ApiProviderType.BLOG_WRITING)).data) == 1

    assert (await manager.delete_provider(created.id)).success is True
    missing = await manager.get_provider(created.id)
    assert missing.success is False
    assert missing.error == "Provider not found"
    assert (await manager.delete_provider(created.id)).error == "Provider not found"


@pytest.mark.asyncio
async def test_update_provider_merges(manager):
    provider = (await manager.create_provider(provider_request())).data
    env_id = provider.environments[0].id

    result = await manager.update_provider(
        provider.id,
        UpdateApiProviderRequest(
            name="Renamed",
            limits={"max_requests_per_minute": 5},
            environments=[
                {"id": env_id, "priority": 3},
                {"name": "backup", "base_url": "https://backup.example.com"},
            ],
        ),
    )

    assert result.success is True
    updated = result.data
    assert updated.name == "Renamed"
    assert updated.limits.max_requests_per_minute == 5
    assert updated.limits.max_requests_per_hour == 1000
    assert [e.priority for e in updated.environments] == [3, 1]
    assert updated.environments[0].base_url == "https://primary.example.com"
    assert updated.environments[1].name == "backup"


@pytest.mark.asyncio
async def test_update_provider_failures(manager):
    assert (await manager.update_provider("nope", UpdateApiProviderRequest(name="x"))).error == (
        "Provider not found"
    )

    provider = (await manager.create_provider(provider_request())).data
    bad_env = await manager.update_provider(
        provider.id, UpdateApiProviderRequest(environments=[{"id": "missing"}])
    )
    assert bad_env.success is False
    assert "Environment not found" in bad_env.error

    bad_limits = await manager.update_provider(
        provider.id, UpdateApiProviderRequest(limits={"max_requests_per_minute": "lots"})
    )
    assert bad_limits.success is False


@pytest.mark.asyncio
async def test_failed_update_leaves_provider_unchanged(manager):
    provider = (await manager.create_provider(provider_request())).data

    result = await manager.update_provider(
        provider.id,
        UpdateApiProviderRequest(
            name="Changed",
            credentials={"api_key": "rotated"},
            environments=[{"id": "missing"}],
        ),
    )
    assert result.success is False

    stored = (await manager.get_provider(provider.id)).data
    assert stored.name == "Writer"
    assert stored.credentials.api_key == "writer-secret"
    assert stored.updated_at == provider.updated_at

    result = await manager.update_provider(
        provider.id, UpdateApiProviderRequest(name="Changed", limits={"max_requests_per_minute": "lots"})
    )
    assert result.success is False
    assert (await manager.get_provider(provider.id)).data.name == "Writer"


# API keys and assignments


@pytest.mark.asyncio
async def test_api_key_lifecycle(manager):
    result = await manager.create_api_key(
        "owner-1", CreateApiKeyRequest(name="ci", provider_ids=["p1"])
    )
    api_key = result.data

    assert api_key.key.startswith("ak_")
    assert len(api_key.key) == 35
    assert api_key.key_prefix.startswith("ak_")
    assert len(api_key.key_prefix) == 11

    assert [k.id for k in (await manager.list_api_keys("owner-1")).data] == [api_key.id]
    assert (await manager.list_api_keys("someone-else")).data == []

    assert await manager.authenticate_api_key(api_key.key) is api_key
    assert api_key.last_used_at is not None
    assert await manager.authenticate_api_key("ak_wrong") is None

    assert (await manager.delete_api_key(api_key.id)).success is True
    assert (await manager.get_api_key(api_key.id)).error == "API key not found"
    assert await manager.authenticate_api_key(api_key.key) is None


@pytest.mark.asyncio
async def test_assignment_lifecycle(manager):
    result = await manager.create_assignment(
        "owner-1",
        CreateApiAssignmentRequest(name="blog traffic", provider_ids=["p1", "p2"]),
    )
    assignment = result.data

    assert assignment.user_id == "owner-1"
    assert assignment.load_balancing_strategy.type == "round-robin"
    assert (await manager.get_assignment(assignment.id)).data is assignment
    assert len((await manager.list_assignments("owner-1")).data) == 1

    assert (await manager.delete_assignment(assignment.id)).success is True
    assert (await manager.delete_assignment(assignment.id)).error == "Assignment not found"


# Routing


@pytest.mark.asyncio
async def test_route_request_success(manager, upstream):
    provider = await create_healthy(manager)

    result = await manager.route_request(api_request())

    assert result.success is True
    response = result.data
    assert response.status_code == 200
    assert response.provider_id == provider.id
    assert response.environment_id == provider.environments[0].id
    assert response.body == {"host": "primary.example.com", "path": "/api/v1/generate"}

    sent = [r for r in upstream.requests if r.url.path == "/api/v1/generate"][0]
    assert sent.headers["Authorization"] == "Bearer writer-secret"
    assert json.loads(sent.content) == {"topic": "tea"}


@pytest.mark.asyncio
async def test_route_request_requires_healthy_environment(manager):
    await manager.create_provider(provider_request())

    result = await manager.route_request(api_request())

    assert result.success is False
    assert result.error == "No available provider or environment"


@pytest.mark.asyncio
async def test_route_request_picks_lowest_priority_number(manager, upstream):
    await create_healthy(manager, hosts=("first.example.com", "second.example.com"))

    await manager.route_request(api_request())

    assert upstream.hosts("/api/v1/generate") == ["first.example.com"]


@pytest.mark.asyncio
async def test_route_request_skips_unhealthy_environment(manager, upstream):
    upstream.down_hosts.add("first.example.com")
    await create_healthy(manager, hosts=("first.example.com", "second.example.com"))
    upstream.down_hosts.clear()

    await manager.route_request(api_request())

    assert upstream.hosts("/api/v1/generate") == ["second.example.com"]


@pytest.mark.asyncio
async def test_route_request_preferred_provider(manager, upstream):
    await create_healthy(manager, name="One", hosts=("one.example.com",))
    two = await create_healthy(manager, name="Two", hosts=("two.example.com",))

    result = await manager.route_request(api_request(provider_id=two.id))

    assert result.data.provider_id == two.id
    assert (await manager.route_request(api_request(provider_id="missing"))).success is False


@pytest.mark.asyncio
async def test_route_request_round_robin(manager, upstream):
    await create_healthy(manager, name="One", hosts=("one.example.com",))
    await create_healthy(manager, name="Two", hosts=("two.example.com",))

    for _ in range(3):
        await manager.route_request(api_request())

    assert upstream.hosts("/api/v1/generate") == [
        "one.example.com",
        "two.example.com",
        "one.example.com",
    ]


@pytest.mark.asyncio
async def test_route_request_with_assignment(manager, upstream):
    await create_healthy(manager, name="One", hosts=("one.example.com",))
    two = await create_healthy(manager, name="Two", hosts=("two.example.com", "two-b.example.com"))
    assignment = (
        await manager.create_assignment(
            "owner-1",
            CreateApiAssignmentRequest(
                name="only two-b",
                provider_ids=[two.id],
                environment_ids=[two.environments[1].id],
            ),
        )
    ).data

    result = await manager.route_request(api_request(), assignment.id)

    assert result.success is True
    assert upstream.hosts("/api/v1/generate") == ["two-b.example.com"]


@pytest.mark.asyncio
async def test_route_request_assignment_errors(manager):
    await create_healthy(manager)
    assert (await manager.route_request(api_request(), "missing")).error == "Assignment not found"

    assignment = (
        await manager.create_assignment(
            "owner-1", CreateApiAssignmentRequest(name="off", provider_ids=["p1"])
        )
    ).data
    assignment.is_active = False
    assert (await manager.route_request(api_request(), assignment.id)).error == (
        "Assignment is inactive"
    )


@pytest.mark.asyncio
async def test_route_request_upstream_error(manager, upstream):
    provider = await create_healthy(manager)
    upstream.failing_hosts.add("primary.example.com")

    result = await manager.route_request(api_request())

    assert result.success is False
    assert result.error == "Upstream returned HTTP 500"
    assert result.data.status_code == 500
    assert result.data.body == {"message": "boom"}
    assert provider.status.failed_requests == 1
    assert provider.status.error_rate == 1.0


@pytest.mark.asyncio
async def test_route_request_connection_error(manager, upstream):
    await create_healthy(manager)
    upstream.down_hosts.add("primary.example.com")

    result = await manager.route_request(api_request())

    assert result.success is False
    assert result.data.status_code == 0
    assert result.error == "Connection refused"


@pytest.mark.asyncio
async def test_usage_accounting(manager, upstream):
    provider = await create_healthy(manager)
    env_id = provider.environments[0].id
    body = {"topic": "tea"}

    await manager.route_request(api_request(body=body))
    await manager.route_request(api_request(body=body, user_id="user-2"))
    upstream.failing_hosts.add("primary.example.com")
    await manager.route_request(api_request(body=body))

    usage = (await manager.get_usage(user_id="user-1")).data
    assert len(usage) == 1
    record = usage[0]
    assert record.id == f"{provider.id}-{env_id}-user-1"
    assert record.request_count == 2
    assert record.success_count == 1
    assert record.error_count == 1
    assert record.token_count > 0
    assert record.cost == pytest.approx(record.token_count * 0.001)

    assert len((await manager.get_usage(provider_id=provider.id)).data) == 2
    assert (await manager.get_usage(provider_id="other")).data == []

    assert provider.status.total_requests == 3
    assert provider.status.successful_requests == 2
    assert provider.status.error_rate == pytest.approx(1 / 3)


def test_estimate_token_count():
    request = api_request(body={"topic": "tea"})
    response = ApiResponse(
        id="r", request_id="req-1", status_code=200, body={"title": "Tea"}, response_time=1, success=True
    )
    # '{"topic":"tea"}' is 15 chars, '{"title":"Tea"}' is 15 chars
    assert ApiManager.estimate_token_count(request, response) == 8


# Health checks


@pytest.mark.asyncio
async def test_health_check_aggregates(manager, upstream):
    upstream.down_hosts.add("b.example.com")
    provider = (await manager.create_provider(provider_request(hosts=("a.example.com", "b.example.com")))).data

    await manager.perform_health_check(provider.id)

    assert provider.environments[0].health_status == HealthState.HEALTHY
    assert provider.environments[1].health_status == HealthState.UNHEALTHY
    assert provider.status.health_status == HealthState.DEGRADED

    upstream.down_hosts.add("a.example.com")
    await manager.perform_health_check(provider.id)
    assert provider.status.health_status == HealthState.UNHEALTHY

    upstream.down_hosts.clear()
    await manager.perform_all_health_checks()
    assert provider.status.health_status == HealthState.HEALTHY


@pytest.mark.asyncio
async def test_health_check_unknown_provider(manager):
    assert await manager.perform_health_check("missing") is None


@pytest.mark.asyncio
async def test_start_runs_health_checks(manager, upstream):
    provider = (await manager.create_provider(provider_request())).data

    await manager.start()
    assert manager.is_running
    for _ in range(50):
        if provider.status.health_status == HealthState.HEALTHY:
            break
        await asyncio.sleep(0.01)
    assert provider.status.health_status == HealthState.HEALTHY

    # Providers created while running get their own loop
    late = (await manager.create_provider(provider_request(name="Late", hosts=("late.example.com",)))).data
    for _ in range(50):
        if late.status.health_status == HealthState.HEALTHY:
            break
        await asyncio.sleep(0.01)
    assert late.status.health_status == HealthState.HEALTHY

    await manager.stop()
    assert not manager.is_running
