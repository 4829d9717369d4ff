"""Generic HTTP client for calls to AI provider endpoints."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ServiceClient:
    """Thin wrapper over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize service client.

        Args:
            timeout: Default request timeout in seconds
            transport: Custom transport (tests pass ``httpx.MockTransport``)
        """
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, transport=transport
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Send one request to a provider.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full URL
            headers: Request headers
            params: Query parameters
            json_data: JSON body
            timeout: Per-call timeout in seconds, defaults to the client's

        Returns:
            httpx.Response, whatever its status

        Raises:
            httpx.HTTPError: On timeouts and connection failures
        """
        logger.debug(f"Sending {method} request to {url}")
        response = await self.client.request(
            method=method,
            url=url,
            headers=headers,
            params=params,
            json=json_data,
            timeout=timeout if timeout is not None else self.timeout,
        )
        logger.debug(f"Received response from {url}: status={response.status_code}")
        return response
