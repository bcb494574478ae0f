"""Save pipeline.

Returns a placeholder cache id: 1 when the cache was stored, -1 when a
failure was swallowed. ValidationError and PathResolutionError propagate;
the temporary archive is removed on every exit path.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from workflow_cache.cache.archive import select_transport
from workflow_cache.cache.compression import resolve_compression
from workflow_cache.cache.failures import is_fatal, report_failure
from workflow_cache.cache.paths import (
    create_temp_directory,
    get_archive_file_size,
    remove_archive,
    resolve_paths,
)
from workflow_cache.cache.store import cache_store_scope
from workflow_cache.cache.validation import check_key, check_paths
from workflow_cache.clients.models import UploadOptions
from workflow_cache.clients.protocols import CacheStoreProtocol
from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.exceptions import PathResolutionError
from workflow_cache.core.logging import get_logger, is_debug


logger = get_logger(__name__)

SAVED_CACHE_ID = 1
NOT_SAVED_CACHE_ID = -1


def is_feature_available(settings: Settings | None = None) -> bool:
    """Whether a cache service is configured for this run."""
    return bool((settings or get_settings()).cache_url)


def _resolve_cache_paths(paths: Sequence[str], settings: Settings) -> list[str]:
    cache_paths = resolve_paths(paths, settings.base_dir)
    logger.info("Cache paths", paths=cache_paths)
    if not cache_paths:
        raise PathResolutionError(
            "Path Validation Error: Path(s) specified in the action for caching do(es) not "
            "exist, hence no cache is being saved."
        )
    return cache_paths


async def save_cache(
    paths: Sequence[str],
    key: str,
    options: UploadOptions | None = None,
    enable_cross_os_archive: bool = False,
    custom_compression: str | None = None,
    *,
    store: CacheStoreProtocol | None = None,
    settings: Settings | None = None,
) -> int:
    """Archive paths and store them under key.

    Args:
        paths: Files, directories and wildcard patterns to cache
        key: Key to save under
        options: Upload chunking options
        enable_cross_os_archive: Allow the cache to be restored on other platforms
        custom_compression: Custom compress program, "none", or None
        store: Cache store to use; created from settings when omitted
        settings: Settings override

    Returns:
        1 if the cache was saved, -1 otherwise

    Raises:
        ValidationError: Empty paths or a bad key
        PathResolutionError: No path exists on disk
    """
    settings = settings or get_settings()
    logger.info("Saving cache via archive", key=key)
    check_paths(paths)
    check_key(key)

    compression = resolve_compression(custom_compression, settings)
    cache_paths = _resolve_cache_paths(paths, settings)

    cache_id = NOT_SAVED_CACHE_ID
    archive_path: Path | None = None
    try:
        transport = select_transport(compression, settings)
        archive_path = create_temp_directory(settings) / compression.file_name
        logger.info("Archive path", path=str(archive_path))

        await transport.create(archive_path, cache_paths, settings.base_dir)
        if is_debug(settings):
            members = await transport.list(archive_path)
            if members is not None:
                logger.debug("Archive contents", members=members)

        archive_size = get_archive_file_size(archive_path)
        logger.info("Archive created", size=archive_size)

        async with cache_store_scope(store, settings) as cache_store:
            await cache_store.upload(
                key,
                paths,
                archive_path,
                compression,
                enable_cross_os_archive,
                archive_size,
                options,
            )

        cache_id = SAVED_CACHE_ID
    except Exception as error:
        if is_fatal(error):
            raise
        report_failure(error, "save")
    finally:
        remove_archive(archive_path)

    return cache_id


async def save_cache_sync(
    paths: Sequence[str],
    key: str,
    *,
    store: CacheStoreProtocol | None = None,
    settings: Settings | None = None,
) -> int:
    """Sync paths directly into the store under key, without an archive.

    Returns:
        1 if the cache was saved, -1 otherwise

    Raises:
        ValidationError: Empty paths or a bad key
        PathResolutionError: No path exists on disk
    """
    settings = settings or get_settings()
    logger.info("Saving cache via sync", key=key)
    check_paths(paths)
    check_key(key)
    _resolve_cache_paths(paths, settings)

    cache_id = NOT_SAVED_CACHE_ID
    try:
        async with cache_store_scope(store, settings) as cache_store:
            await cache_store.upload_sync(key, paths)
        cache_id = SAVED_CACHE_ID
    except Exception as error:
        if is_fatal(error):
            raise
        report_failure(error, "save")

    return cache_id
