"""Save and restore CI workflow caches.

Paths are archived, uploaded to a remote cache store under a key, and later
restored by exact key or ordered prefix fallback. Cache infrastructure
failures never fail the caller; only malformed input does.

Example:
    >>> from workflow_cache import restore_cache, save_cache
    >>> key = await restore_cache(["node_modules"], "npm-linux-abc", ["npm-linux-"])
    >>> if key is None:
    ...     await save_cache(["node_modules"], "npm-linux-abc")
"""

from workflow_cache.cache import (
    is_feature_available,
    restore_cache,
    restore_cache_sync,
    save_cache,
    save_cache_sync,
)
from workflow_cache.clients import DownloadOptions, UploadOptions
from workflow_cache.core.exceptions import (
    PathResolutionError,
    ReserveCacheError,
    ValidationError,
)


__all__ = [
    "DownloadOptions",
    "PathResolutionError",
    "ReserveCacheError",
    "UploadOptions",
    "ValidationError",
    "is_feature_available",
    "restore_cache",
    "restore_cache_sync",
    "save_cache",
    "save_cache_sync",
]
