"""Unit tests for workflow_cache.core.http.

Tests the HTTP client factory for the cache service.
"""

from unittest.mock import MagicMock

import httpx
import pytest
from pydantic import SecretStr

from workflow_cache.core.http import CacheHTTPClientFactory


@pytest.fixture
def mock_settings() -> MagicMock:
    """Create mock settings for testing."""
    settings = MagicMock()
    settings.cache_url = "https://cache.example/tenant/"
    settings.runtime_token = SecretStr("token-123")
    settings.service_name = "workflow-cache"
    settings.http_timeout_seconds = 30
    settings.download_timeout_seconds = 600
    return settings


class TestCacheHTTPClientFactory:
    """Tests for CacheHTTPClientFactory class."""

    def test_init_with_settings(self, mock_settings: MagicMock) -> None:
        """Test factory initialization with provided settings."""
        factory = CacheHTTPClientFactory(settings=mock_settings)

        assert factory._settings == mock_settings

    def test_base_url(self, mock_settings: MagicMock) -> None:
        """Test that the API path is appended once."""
        factory = CacheHTTPClientFactory(settings=mock_settings)

        assert factory.get_base_url() == "https://cache.example/tenant/_apis/artifactcache/"

    def test_base_url_missing(self, mock_settings: MagicMock) -> None:
        """Test that a missing URL is reported."""
        mock_settings.cache_url = None

        with pytest.raises(ValueError, match="ACTIONS_CACHE_URL"):
            CacheHTTPClientFactory(settings=mock_settings).get_base_url()

    def test_headers(self, mock_settings: MagicMock) -> None:
        """Test auth and API version headers."""
        headers = CacheHTTPClientFactory(settings=mock_settings).get_headers()

        assert headers["Authorization"] == "Bearer token-123"
        assert headers["Accept"] == "application/json;api-version=6.0-preview.1"
        assert headers["User-Agent"] == "workflow-cache"

    def test_headers_without_token(self, mock_settings: MagicMock) -> None:
        """Test that no Authorization header is sent without a token."""
        mock_settings.runtime_token = None

        headers = CacheHTTPClientFactory(settings=mock_settings).get_headers()

        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_create_service_client(self, mock_settings: MagicMock) -> None:
        """Test service client configuration."""
        client = CacheHTTPClientFactory(settings=mock_settings).create_service_client()
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert str(client.base_url) == "https://cache.example/tenant/_apis/artifactcache/"
            assert client.headers["Authorization"] == "Bearer token-123"
            assert client.timeout.read == 30
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_create_service_client_custom_timeout(self, mock_settings: MagicMock) -> None:
        """Test timeout override."""
        client = CacheHTTPClientFactory(settings=mock_settings).create_service_client(timeout=5)
        try:
            assert client.timeout.read == 5
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_create_download_client(self, mock_settings: MagicMock) -> None:
        """Test that download clients carry no service credentials."""
        client = CacheHTTPClientFactory(settings=mock_settings).create_download_client()
        try:
            assert "Authorization" not in client.headers
            assert client.follow_redirects is True
            assert client.timeout.read == 600
        finally:
            await client.aclose()
