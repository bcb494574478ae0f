"""Remote cache stores.

Protocol duck typing lets the pipelines run against the HTTP cache
service, a directory-backed store, or fakes in tests.
"""

from workflow_cache.clients.cache_service import CacheServiceClient
from workflow_cache.clients.factory import create_cache_store
from workflow_cache.clients.filesystem import FilesystemCacheStore
from workflow_cache.clients.models import CacheEntry, DownloadOptions, UploadOptions
from workflow_cache.clients.protocols import CacheStoreProtocol, get_cache_version


__all__ = [
    "CacheEntry",
    "CacheServiceClient",
    "CacheStoreProtocol",
    "DownloadOptions",
    "FilesystemCacheStore",
    "UploadOptions",
    "create_cache_store",
    "get_cache_version",
]
