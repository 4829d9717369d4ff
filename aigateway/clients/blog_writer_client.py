"""Client for the hosted blog writer API."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from aigateway.models.blog import BlogWriterRequest
from aigateway.services.error_service import ErrorService

logger = logging.getLogger(__name__)

COMPONENT = "blog-writer-api"


class BlogWriterError(Exception):
    """Raised when the blog writer API cannot serve a request."""


class BlogWriterClient:
    """Calls the blog writer API with retries and exponential backoff."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30,
        retry_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the client.

        Args:
            base_url: API root, without a trailing slash
            api_key: Bearer key sent on every request
            timeout: Per-attempt timeout in seconds
            retry_attempts: Attempts per request, at least one
            transport: Custom transport (tests pass ``httpx.MockTransport``)
            sleep: Backoff sleeper
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self._sleep = sleep
        self.client = httpx.AsyncClient(transport=transport)

    async def close(self):
        await self.client.aclose()

    async def generate_blog_post(self, request: BlogWriterRequest) -> Dict[str, Any]:
        """Generate a post; ``metadata.processing_time`` is set to the elapsed ms."""
        start = time.monotonic()
        try:
            result = await self._request(
                "POST", "/generate", json_data=request.model_dump(exclude_none=True)
            )
        except BlogWriterError as e:
            ErrorService.log_operation(
                COMPONENT,
                "generate-blog-post",
                success=False,
                error=str(e),
                additional_data={"topic": request.topic},
            )
            raise

        processing_time = (time.monotonic() - start) * 1000
        if isinstance(result, dict) and isinstance(result.get("metadata"), dict):
            result["metadata"]["processing_time"] = processing_time

        ErrorService.log_operation(
            COMPONENT,
            "generate-blog-post",
            additional_data={
                "topic": request.topic,
                "word_count": result.get("word_count") if isinstance(result, dict) else None,
                "processing_time": processing_time,
            },
        )
        return result

    async def get_available_options(self) -> Dict[str, Any]:
        try:
            return await self._request("GET", "/options")
        except BlogWriterError as e:
            ErrorService.log_operation(COMPONENT, "get-available-options", success=False, error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        try:
            return await self._request("GET", "/health")
        except BlogWriterError as e:
            ErrorService.log_operation(COMPONENT, "health-check", success=False, error=str(e))
            raise

    def update_config(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
    ):
        if base_url is not None:
            self.base_url = base_url.rstrip("/")
        if api_key is not None:
            self.api_key = api_key
        if timeout is not None:
            self.timeout = timeout
        if retry_attempts is not None:
            self.retry_attempts = retry_attempts

    def get_config(self) -> Dict[str, Any]:
        """Current configuration, without the API key."""
        return {
            "base_url": self.base_url,
            "timeout": self.timeout,
            "retry_attempts": self.retry_attempts,
        }

    async def _request(
        self, method: str, path: str, json_data: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        attempts = max(1, self.retry_attempts)
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self.client.request(
                    method, url, headers=headers, json=json_data, timeout=self.timeout
                )
                if response.is_success:
                    return response.json()

                try:
                    error_body = response.json()
                except ValueError:
                    error_body = {}
                message = error_body.get("message") if isinstance(error_body, dict) else None
                last_error = BlogWriterError(
                    message or f"HTTP {response.status_code}: {response.reason_phrase}"
                )
            except httpx.TimeoutException:
                raise BlogWriterError("Request timeout")
            except httpx.HTTPError as e:
                last_error = BlogWriterError(str(e) or e.__class__.__name__)

            if attempt < attempts:
                logger.warning(f"Blog writer {method} {path} failed (attempt {attempt}): {last_error}")
                await self._sleep(2**attempt)

        raise last_error or BlogWriterError("Request failed after all retry attempts")
