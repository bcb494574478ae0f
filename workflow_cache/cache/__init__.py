"""Cache save/restore pipelines.

Exports:
    - restore_cache, restore_cache_sync: Restore pipeline
    - save_cache, save_cache_sync, is_feature_available: Save pipeline
    - check_key, check_keys, check_paths: Input validation
    - Compression, resolve_compression: Compression selection
    - ArchiveTransport, select_transport, TarCodec: Archive handling
"""

from workflow_cache.cache.compression import Compression, resolve_compression
from workflow_cache.cache.validation import check_key, check_keys, check_paths
from workflow_cache.cache.paths import resolve_paths
from workflow_cache.cache.archive import ArchiveTransport, TarCodec, select_transport
from workflow_cache.cache.restore import restore_cache, restore_cache_sync
from workflow_cache.cache.save import is_feature_available, save_cache, save_cache_sync


__all__ = [
    "ArchiveTransport",
    "Compression",
    "TarCodec",
    "check_key",
    "check_keys",
    "check_paths",
    "is_feature_available",
    "resolve_compression",
    "resolve_paths",
    "restore_cache",
    "restore_cache_sync",
    "save_cache",
    "save_cache_sync",
    "select_transport",
]
