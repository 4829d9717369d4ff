"""Provider catalog, API keys, assignments and request routing with usage accounting."""

import asyncio
import json
import logging
import secrets
import time
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from aigateway.clients.service_client import ServiceClient
from aigateway.models.access import (
    ApiAssignment,
    ApiKey,
    CreateApiAssignmentRequest,
    CreateApiKeyRequest,
)
from aigateway.models.provider import (
    ApiCapabilities,
    ApiCredentials,
    ApiEnvironment,
    ApiLimits,
    ApiMetadata,
    ApiProvider,
    ApiProviderType,
    ApiStatus,
    CreateApiProviderRequest,
    EnvironmentCreate,
    HealthState,
    UpdateApiProviderRequest,
)
from aigateway.models.request import ApiRequest, ApiResponse, ApiUsage
from aigateway.models.response import ManagementResponse, utc_timestamp
from aigateway.services.error_service import ErrorService
from aigateway.services.strategies import COST_PER_TOKEN, ProviderSelector, estimate_tokens
from aigateway.utils import generate_id, random_base36

logger = logging.getLogger(__name__)

COMPONENT = "api-manager"


class ApiManager:
    """In-memory store and router for provider traffic.

    All state lives in this object; ``start()`` launches one health-check
    task per provider and ``stop()`` cancels them.
    """

    def __init__(
        self,
        service_client: Optional[ServiceClient] = None,
        providers: Optional[Iterable[ApiProvider]] = None,
        health_check_interval: float = 30,
        selector: Optional[ProviderSelector] = None,
    ):
        """Initialize the manager.

        Args:
            service_client: Client for provider calls and health probes
            providers: Providers to seed the catalog with
            health_check_interval: Seconds between health checks of a provider
            selector: Provider selection strategies
        """
        self.service_client = service_client or ServiceClient()
        self.health_check_interval = health_check_interval
        self.selector = selector or ProviderSelector()

        self.providers: Dict[str, ApiProvider] = {p.id: p for p in providers or []}
        self.assignments: Dict[str, ApiAssignment] = {}
        self.api_keys: Dict[str, ApiKey] = {}
        self.usage: Dict[str, ApiUsage] = {}

        self._health_tasks: Dict[str, asyncio.Task] = {}
        self._in_flight: Dict[str, int] = defaultdict(int)
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        self._running = True
        for provider_id in list(self.providers):
            self._start_health_check(provider_id)
        logger.info(f"API manager started with {len(self.providers)} providers")

    async def stop(self):
        self._running = False
        for provider_id in list(self._health_tasks):
            await self._stop_health_check(provider_id)
        logger.info("API manager stopped")

    # Provider management

    async def create_provider(self, request: CreateApiProviderRequest) -> ManagementResponse:
        try:
            now = utc_timestamp()
            provider = ApiProvider(
                id=generate_id("api"),
                name=request.name,
                type=request.type,
                environments=[self._new_environment(env, now) for env in request.environments],
                credentials=ApiCredentials(**request.credentials.model_dump(), encrypted=True),
                capabilities=request.capabilities,
                limits=request.limits,
                metadata=request.metadata,
                status=ApiStatus(last_health_check=now),
                created_at=now,
                updated_at=now,
            )
            self.providers[provider.id] = provider
            if self._running:
                self._start_health_check(provider.id)

            ErrorService.log_operation(
                COMPONENT,
                "create-provider",
                additional_data={"provider_id": provider.id, "name": provider.name},
            )
            return ManagementResponse.ok(provider, "Provider created successfully")
        except Exception as e:
            return ErrorService.failure(COMPONENT, "create-provider", e)

    async def update_provider(
        self, provider_id: str, request: UpdateApiProviderRequest
    ) -> ManagementResponse:
        try:
            provider = self.providers.get(provider_id)
            if provider is None:
                return ManagementResponse.fail("Provider not found")

            # The stored provider is replaced only once every field has merged
            provider = provider.model_copy(deep=True)
            if request.name is not None:
                provider.name = request.name
            if request.environments is not None:
                provider.environments = self._merge_environments(
                    provider.environments, request.environments
                )
            if request.credentials is not None:
                provider.credentials = _merge(ApiCredentials, provider.credentials, request.credentials)
            if request.capabilities is not None:
                provider.capabilities = _merge(ApiCapabilities, provider.capabilities, request.capabilities)
            if request.limits is not None:
                provider.limits = _merge(ApiLimits, provider.limits, request.limits)
            if request.metadata is not None:
                provider.metadata = _merge(ApiMetadata, provider.metadata, request.metadata)
            provider.updated_at = utc_timestamp()
            self.providers[provider_id] = provider

            ErrorService.log_operation(
                COMPONENT, "update-provider", additional_data={"provider_id": provider_id}
            )
            return ManagementResponse.ok(provider, "Provider updated successfully")
        except (ValidationError, ValueError) as e:
            return ErrorService.failure(
                COMPONENT, "update-provider", e, additional_data={"provider_id": provider_id}
            )

    async def delete_provider(self, provider_id: str) -> ManagementResponse:
        if provider_id not in self.providers:
            return ManagementResponse.fail("Provider not found")

        await self._stop_health_check(provider_id)
        del self.providers[provider_id]

        ErrorService.log_operation(
            COMPONENT, "delete-provider", additional_data={"provider_id": provider_id}
        )
        return ManagementResponse.ok(message="Provider deleted successfully")

    async def get_provider(self, provider_id: str) -> ManagementResponse:
        provider = self.providers.get(provider_id)
        if provider is None:
            return ManagementResponse.fail("Provider not found")
        return ManagementResponse.ok(provider)

    async def list_providers(
        self, provider_type: Optional[ApiProviderType] = None
    ) -> ManagementResponse:
        providers = [
            p for p in self.providers.values() if provider_type is None or p.type == provider_type
        ]
        return ManagementResponse.ok(providers)

    # API keys

    async def create_api_key(self, user_id: str, request: CreateApiKeyRequest) -> ManagementResponse:
        try:
            now = utc_timestamp()
            api_key = ApiKey(
                id=generate_id("api"),
                name=request.name,
                key=f"ak_{random_base36(32)}",
                # Display prefix only; it is not derived from the key
                key_prefix=f"ak_{random_base36(8)}",
                user_id=user_id,
                provider_ids=request.provider_ids,
                environment_ids=request.environment_ids,
                permissions=request.permissions,
                rate_limits=request.rate_limits,
                expires_at=request.expires_at,
                created_at=now,
                updated_at=now,
            )
            self.api_keys[api_key.id] = api_key

            ErrorService.log_operation(
                COMPONENT,
                "create-api-key",
                additional_data={"api_key_id": api_key.id, "user_id": user_id},
            )
            return ManagementResponse.ok(api_key, "API key created successfully")
        except Exception as e:
            return ErrorService.failure(COMPONENT, "create-api-key", e, {"user_id": user_id})

    async def get_api_key(self, api_key_id: str) -> ManagementResponse:
        api_key = self.api_keys.get(api_key_id)
        if api_key is None:
            return ManagementResponse.fail("API key not found")
        return ManagementResponse.ok(api_key)

    async def list_api_keys(self, user_id: str) -> ManagementResponse:
        return ManagementResponse.ok([k for k in self.api_keys.values() if k.user_id == user_id])

    async def delete_api_key(self, api_key_id: str) -> ManagementResponse:
        if self.api_keys.pop(api_key_id, None) is None:
            return ManagementResponse.fail("API key not found")
        ErrorService.log_operation(
            COMPONENT, "delete-api-key", additional_data={"api_key_id": api_key_id}
        )
        return ManagementResponse.ok(message="API key deleted successfully")

    async def authenticate_api_key(self, raw_key: str) -> Optional[ApiKey]:
        """Resolve a presented key to an active ApiKey and stamp ``last_used_at``.

        ``expires_at`` is not consulted.
        """
        for api_key in self.api_keys.values():
            if api_key.is_active and secrets.compare_digest(api_key.key.encode(), raw_key.encode()):
                api_key.last_used_at = utc_timestamp()
                return api_key
        return None

    # Assignments

    async def create_assignment(
        self, user_id: str, request: CreateApiAssignmentRequest
    ) -> ManagementResponse:
        try:
            now = utc_timestamp()
            assignment = ApiAssignment(
                id=generate_id("api"),
                user_id=user_id,
                created_at=now,
                updated_at=now,
                **request.model_dump(),
            )
            self.assignments[assignment.id] = assignment

            ErrorService.log_operation(
                COMPONENT,
                "create-assignment",
                additional_data={"assignment_id": assignment.id, "user_id": user_id},
            )
            return ManagementResponse.ok(assignment, "Assignment created successfully")
        except Exception as e:
            return ErrorService.failure(COMPONENT, "create-assignment", e, {"user_id": user_id})

    async def get_assignment(self, assignment_id: str) -> ManagementResponse:
        assignment = self.assignments.get(assignment_id)
        if assignment is None:
            return ManagementResponse.fail("Assignment not found")
        return ManagementResponse.ok(assignment)

    async def list_assignments(self, user_id: str) -> ManagementResponse:
        return ManagementResponse.ok(
            [a for a in self.assignments.values() if a.user_id == user_id]
        )

    async def delete_assignment(self, assignment_id: str) -> ManagementResponse:
        if self.assignments.pop(assignment_id, None) is None:
            return ManagementResponse.fail("Assignment not found")
        ErrorService.log_operation(
            COMPONENT, "delete-assignment", additional_data={"assignment_id": assignment_id}
        )
        return ManagementResponse.ok(message="Assignment deleted successfully")

    # Routing

    async def route_request(
        self, request: ApiRequest, assignment_id: Optional[str] = None
    ) -> ManagementResponse:
        """Send ``request`` to a provider environment and account for it.

        Returns:
            Success envelope with the ApiResponse, or a failure envelope. A
            non-2xx or unreachable upstream yields a failure envelope that
            still carries the ApiResponse in ``data``.
        """
        try:
            assignment = None
            if assignment_id:
                assignment = self.assignments.get(assignment_id)
                if assignment is None:
                    return ManagementResponse.fail("Assignment not found")
                if not assignment.is_active:
                    return ManagementResponse.fail("Assignment is inactive")

            provider, environment = self._select_provider_and_environment(
                request.provider_id, assignment
            )
            if provider is None or environment is None:
                return ManagementResponse.fail("No available provider or environment")

            self._in_flight[provider.id] += 1
            try:
                response = await self._execute(request, provider, environment)
            finally:
                self._in_flight[provider.id] -= 1

            self._update_usage_stats(provider.id, environment.id, request, response)
            self._update_provider_status(provider.id, response.success, response.response_time)

            if not response.success:
                error = response.error or f"Upstream returned HTTP {response.status_code}"
                ErrorService.log_operation(
                    COMPONENT,
                    "route-request",
                    success=False,
                    error=error,
                    additional_data={
                        "request_id": request.id,
                        "provider_id": provider.id,
                        "environment_id": environment.id,
                    },
                )
                return ManagementResponse.fail(error, data=response)

            ErrorService.log_operation(
                COMPONENT,
                "route-request",
                additional_data={
                    "request_id": request.id,
                    "provider_id": provider.id,
                    "environment_id": environment.id,
                    "response_time": response.response_time,
                },
            )
            return ManagementResponse.ok(response)
        except Exception as e:
            return ErrorService.failure(
                COMPONENT, "route-request", e, additional_data={"request_id": request.id}
            )

    def _select_provider_and_environment(
        self, preferred_provider_id: Optional[str], assignment: Optional[ApiAssignment]
    ) -> Tuple[Optional[ApiProvider], Optional[ApiEnvironment]]:
        if assignment is not None:
            candidates = [
                p
                for p in self.providers.values()
                if p.id in assignment.provider_ids and p.status.is_active
            ]
        elif preferred_provider_id:
            provider = self.providers.get(preferred_provider_id)
            candidates = [provider] if provider and provider.status.is_active else []
        else:
            candidates = [p for p in self.providers.values() if p.status.is_active]

        if not candidates:
            return None, None

        provider = self.selector.select(
            candidates,
            assignment.load_balancing_strategy if assignment else None,
            policy_key=assignment.id if assignment else "default",
            in_flight=self._in_flight,
        )

        environments = [
            env
            for env in provider.environments
            if env.is_active and env.health_status == HealthState.HEALTHY
        ]
        if assignment is not None and assignment.environment_ids:
            environments = [env for env in environments if env.id in assignment.environment_ids]
        if not environments:
            return provider, None

        # Lower number means higher priority; sorted() is stable for ties
        return provider, sorted(environments, key=lambda env: env.priority)[0]

    async def _execute(
        self, request: ApiRequest, provider: ApiProvider, environment: ApiEnvironment
    ) -> ApiResponse:
        url = f"{environment.base_url}{request.endpoint}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {provider.credentials.api_key or ''}",
            **provider.credentials.custom_headers,
            **request.headers,
        }
        start = time.monotonic()

        try:
            response = await self.service_client.send(
                request.method,
                url,
                headers=headers,
                params=request.query_params,
                json_data=request.body,
                timeout=environment.timeout_ms / 1000,
            )
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            return ApiResponse(
                id=generate_id("api"),
                request_id=request.id,
                provider_id=provider.id,
                environment_id=environment.id,
                status_code=response.status_code,
                headers=dict(response.headers),
                body=body,
                response_time=(time.monotonic() - start) * 1000,
                success=response.is_success,
            )
        except httpx.HTTPError as e:
            return ApiResponse(
                id=generate_id("api"),
                request_id=request.id,
                provider_id=provider.id,
                environment_id=environment.id,
                status_code=0,
                body=None,
                response_time=(time.monotonic() - start) * 1000,
                success=False,
                error=str(e) or e.__class__.__name__,
            )

    # Usage accounting

    @staticmethod
    def estimate_token_count(request: ApiRequest, response: ApiResponse) -> int:
        """Tokens of the serialized request body plus the serialized response body."""
        return estimate_tokens(_compact_json(request.body)) + estimate_tokens(
            _compact_json(response.body)
        )

    def _update_usage_stats(
        self,
        provider_id: str,
        environment_id: str,
        request: ApiRequest,
        response: ApiResponse,
    ):
        key = f"{provider_id}-{environment_id}-{request.user_id}"
        usage = self.usage.get(key) or ApiUsage(
            id=key,
            provider_id=provider_id,
            environment_id=environment_id,
            user_id=request.user_id,
            endpoint=request.endpoint,
            method=request.method,
        )
        tokens = self.estimate_token_count(request, response)

        usage.average_response_time = _running_mean(
            usage.average_response_time, response.response_time, usage.request_count
        )
        usage.request_count += 1
        usage.token_count += tokens
        usage.cost += tokens * COST_PER_TOKEN
        if response.success:
            usage.success_count += 1
        else:
            usage.error_count += 1
        usage.api_key_id = request.api_key_id
        usage.endpoint = request.endpoint
        usage.method = request.method
        usage.timestamp = utc_timestamp()
        self.usage[key] = usage

    def _update_provider_status(self, provider_id: str, success: bool, response_time: float):
        provider = self.providers.get(provider_id)
        if provider is None:
            return

        status = provider.status
        status.average_response_time = _running_mean(
            status.average_response_time, response_time, status.total_requests
        )
        status.total_requests += 1
        if success:
            status.successful_requests += 1
        else:
            status.failed_requests += 1
        status.error_rate = status.failed_requests / status.total_requests

    async def get_usage(
        self, provider_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> ManagementResponse:
        records = [
            u
            for u in self.usage.values()
            if (provider_id is None or u.provider_id == provider_id)
            and (user_id is None or u.user_id == user_id)
        ]
        return ManagementResponse.ok(records)

    # Health checks

    def _start_health_check(self, provider_id: str):
        if provider_id in self._health_tasks:
            return
        self._health_tasks[provider_id] = asyncio.create_task(
            self._health_check_loop(provider_id)
        )

    async def _stop_health_check(self, provider_id: str):
        task = self._health_tasks.pop(provider_id, None)
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _health_check_loop(self, provider_id: str):
        while True:
            try:
                await self.perform_health_check(provider_id)
            except Exception as e:
                logger.error(f"Error in health check loop for {provider_id}: {e}")
            await asyncio.sleep(self.health_check_interval)

    async def perform_health_check(self, provider_id: str) -> Optional[ApiProvider]:
        """Probe every environment of a provider and refresh its status."""
        provider = self.providers.get(provider_id)
        if provider is None:
            return None

        for environment in provider.environments:
            check = environment.health_check
            start = time.monotonic()
            try:
                response = await self.service_client.send(
                    "GET",
                    f"{environment.base_url}{check.endpoint}",
                    timeout=check.timeout_ms / 1000,
                )
                healthy = response.status_code == check.expected_status
                environment.health_status = (
                    HealthState.HEALTHY if healthy else HealthState.UNHEALTHY
                )
                provider.status.average_response_time = (time.monotonic() - start) * 1000
            except httpx.HTTPError as e:
                environment.health_status = HealthState.UNHEALTHY
                ErrorService.log_operation(
                    COMPONENT,
                    "perform-health-check",
                    success=False,
                    error=str(e) or e.__class__.__name__,
                    additional_data={"provider_id": provider_id, "environment_id": environment.id},
                )
            environment.last_health_check = utc_timestamp()

        provider.status.health_status = _aggregate_health(provider.environments)
        provider.status.last_health_check = utc_timestamp()
        return provider

    async def perform_all_health_checks(self) -> List[ApiProvider]:
        results = await asyncio.gather(
            *(self.perform_health_check(pid) for pid in list(self.providers))
        )
        return [p for p in results if p is not None]

    def _new_environment(self, env: EnvironmentCreate, now: str) -> ApiEnvironment:
        return ApiEnvironment(
            **env.model_dump(),
            id=generate_id("api"),
            last_health_check=now,
            health_status=HealthState.UNHEALTHY,
        )

    def _merge_environments(
        self, current: List[ApiEnvironment], patches: List[Dict[str, Any]]
    ) -> List[ApiEnvironment]:
        by_id = {env.id: env for env in current}
        merged = list(current)
        for patch in patches:
            env_id = patch.get("id")
            if env_id in by_id:
                updated = _merge(ApiEnvironment, by_id[env_id], patch)
                merged[merged.index(by_id[env_id])] = updated
            elif env_id is not None:
                raise ValueError(f"Environment not found: {env_id}")
            else:
                merged.append(
                    self._new_environment(EnvironmentCreate.model_validate(patch), utc_timestamp())
                )
        return merged

    async def close(self):
        await self.stop()
        await self.service_client.close()


def _merge(model_cls, current, patch: Dict[str, Any]):
    """Validated shallow merge of ``patch`` over a model instance."""
    return model_cls.model_validate({**current.model_dump(), **patch})


def _running_mean(average: float, value: float, count: int) -> float:
    if count == 0:
        return value
    return (average * count + value) / (count + 1)


def _compact_json(body: Any) -> str:
    return json.dumps(body if body else "", separators=(",", ":"), default=str)


def _aggregate_health(environments: List[ApiEnvironment]) -> HealthState:
    healthy = sum(1 for env in environments if env.health_status == HealthState.HEALTHY)
    if environments and healthy == len(environments):
        return HealthState.HEALTHY
    if healthy:
        return HealthState.DEGRADED
    return HealthState.UNHEALTHY
