"""HTTP client factory for the cache service.

All clients use httpx for async HTTP operations. Two kinds are produced:
- service clients, bound to the cache service API with auth headers
- download clients, used for opaque archive locations (pre-signed URLs)
  which must not receive the service bearer token
"""

from typing import Any

import httpx

from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.constants import (
    CACHE_SERVICE_API_PATH,
    CACHE_SERVICE_API_VERSION,
)
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)


class CacheHTTPClientFactory:
    """Factory for creating HTTP clients to the cache service.

    Provides centralized client creation with:
    - Consistent timeout configuration
    - Service URL from Settings
    - Auth and API version headers

    Example:
        ```python
        factory = CacheHTTPClientFactory()
        client = factory.create_service_client()
        try:
            response = await client.get("cache", params={"keys": "a,b"})
        finally:
            await client.aclose()
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the HTTP client factory.

        Args:
            settings: Application settings. Uses get_settings() if not provided.
        """
        self._settings = settings or get_settings()

    def get_base_url(self) -> str:
        """Get the cache service API base URL.

        Returns:
            Base URL ending with the artifact cache API path.

        Raises:
            ValueError: If no cache URL is configured.
        """
        url = self._settings.cache_url
        if not url:
            raise ValueError("No cache service URL configured (ACTIONS_CACHE_URL)")
        return f"{url.rstrip('/')}/{CACHE_SERVICE_API_PATH}"

    def get_headers(self) -> dict[str, str]:
        """Build request headers for the cache service."""
        headers = {
            "Accept": f"application/json;api-version={CACHE_SERVICE_API_VERSION}",
            "User-Agent": f"{self._settings.service_name}",
        }
        token = self._settings.runtime_token
        if token is not None:
            headers["Authorization"] = f"Bearer {token.get_secret_value()}"
        return headers

    def create_service_client(
        self,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.AsyncClient:
        """Create a client bound to the cache service (caller manages lifecycle).

        Args:
            timeout: Request timeout in seconds.
            **kwargs: Additional arguments passed to httpx.AsyncClient.

        Returns:
            Configured httpx.AsyncClient instance.

        Warning:
            Caller is responsible for calling `await client.aclose()`.
        """
        base_url = self.get_base_url()
        request_timeout = timeout or self._settings.http_timeout_seconds

        logger.debug(
            "Creating cache service client",
            base_url=base_url,
            timeout=request_timeout,
        )

        return httpx.AsyncClient(
            base_url=base_url,
            headers=self.get_headers(),
            timeout=httpx.Timeout(request_timeout),
            **kwargs,
        )

    def create_download_client(
        self,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.AsyncClient:
        """Create a client for fetching archives from their storage location.

        Args:
            timeout: Request timeout in seconds. Uses the download timeout by default.
            **kwargs: Additional arguments passed to httpx.AsyncClient.

        Returns:
            Configured httpx.AsyncClient instance.
        """
        request_timeout = timeout or self._settings.download_timeout_seconds
        return httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout),
            follow_redirects=True,
            **kwargs,
        )
