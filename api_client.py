"""
Make API Client for MCP Server

Thin async wrapper over the Make REST API (https://<zone>/api/v2).
Client can be instantiated at module load with an empty token and will
work once the MAKE_API_TOKEN environment variable is set.
"""
import logging
from typing import Any, Optional

import httpx

from exceptions import UpstreamError

logger = logging.getLogger(__name__)


class MakeClient:
    """Client for Make API endpoints"""

    def __init__(
        self,
        zone: str,
        api_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize API client with configuration.

        Args:
            zone: Make zone host, e.g. eu1.make.com
            api_token: Make API token (can be empty at init)
            transport: Optional httpx transport, used by tests
        """
        self.zone = zone
        self.api_token = api_token
        self.base_url = f"https://{zone}/api/v2"
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client"""
        if self._client is None:
            # Validate config on first use
            if not self.api_token:
                raise ValueError(
                    "Missing required environment variable:\n"
                    "- MAKE_API_TOKEN\n"
                    "Make sure it is configured before calling Make tools"
                )

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Token {self.api_token}"
                },
                transport=self._transport
            )
        return self._client

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        json_data: Optional[dict[str, Any]] = None
    ) -> Any:
        """
        Make API request.

        Raises:
            UpstreamError: Make answered with a non-2xx status
        """
        client = self._get_client()
        logger.debug("%s %s params=%s", method, endpoint, params)
        response = await client.request(
            method=method,
            url=endpoint,
            params=params,
            json=json_data
        )
        if not response.is_success:
            raise UpstreamError(response.status_code, response.text)
        return response.json()

    async def close(self):
        """Close client"""
        if self._client:
            await self._client.aclose()
            self._client = None
