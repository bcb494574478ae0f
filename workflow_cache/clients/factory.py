"""Factory for cache store instantiation."""

from __future__ import annotations

from workflow_cache.clients.protocols import CacheStoreProtocol
from workflow_cache.core.config import Settings, get_settings


def create_cache_store(settings: Settings | None = None) -> CacheStoreProtocol:
    """Instantiate the store matching the configured cache URL.

    Args:
        settings: Application settings. Uses get_settings() if not provided.

    Returns:
        FilesystemCacheStore for file:// URLs, CacheServiceClient otherwise.

    Raises:
        ValueError: If no cache URL is configured.
    """
    settings = settings or get_settings()
    url = settings.cache_url
    if not url:
        raise ValueError("ACTIONS_CACHE_URL must be set to use the cache")

    if url.startswith("file://"):
        from workflow_cache.clients.filesystem import FilesystemCacheStore, root_from_url
        return FilesystemCacheStore(root_from_url(url), settings=settings)

    from workflow_cache.clients.cache_service import CacheServiceClient
    return CacheServiceClient(settings=settings)
