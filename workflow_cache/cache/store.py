"""Store lifetime for a single pipeline run."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from workflow_cache.clients.factory import create_cache_store
from workflow_cache.clients.protocols import CacheStoreProtocol
from workflow_cache.core.config import Settings


@asynccontextmanager
async def cache_store_scope(
    store: CacheStoreProtocol | None,
    settings: Settings,
) -> AsyncIterator[CacheStoreProtocol]:
    """Yield the given store, or create one and close it afterwards."""
    if store is not None:
        yield store
        return
    owned = create_cache_store(settings)
    try:
        yield owned
    finally:
        await owned.close()
