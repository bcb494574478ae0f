"""Restore pipeline.

Terminal outcomes:
- HIT-RESTORED: matched key returned after download and extraction
- HIT-LOOKUP-ONLY: matched key returned, nothing transferred
- MISS: None
- SUPPRESSED-ERROR: None, failure logged

Only ValidationError escapes; the temporary archive is removed on every
exit path.
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
)
from workflow_cache.cache.store import cache_store_scope
from workflow_cache.cache.validation import check_key, check_keys, check_paths
from workflow_cache.clients.models import DownloadOptions
from workflow_cache.clients.protocols import CacheStoreProtocol
from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.logging import get_logger, is_debug


logger = get_logger(__name__)


async def restore_cache(
    paths: Sequence[str],
    primary_key: str,
    restore_keys: Sequence[str] | None = None,
    options: DownloadOptions | None = None,
    enable_cross_os_archive: bool = False,
    custom_compression: str | None = None,
    *,
    store: CacheStoreProtocol | None = None,
    settings: Settings | None = None,
) -> str | None:
    """Restore a cache from the first matching key.

    Args:
        paths: Paths to restore; they also feed the cache version
        primary_key: Key tried first, as an exact match
        restore_keys: Ordered prefix keys tried after the primary key
        options: Download options (lookup_only skips the transfer)
        enable_cross_os_archive: Allow restoring caches made on other platforms
        custom_compression: Custom compress program, "none", or None
        store: Cache store to use; created from settings when omitted
        settings: Settings override

    Returns:
        The matched key, or None when nothing was restored

    Raises:
        ValidationError: Empty paths, bad keys, or more than 10 keys
    """
    settings = settings or get_settings()
    check_paths(paths)

    keys = [primary_key, *(restore_keys or [])]
    logger.debug("Resolved keys", keys=keys)
    check_keys(keys)

    compression = resolve_compression(custom_compression, settings)
    archive_path: Path | None = None
    try:
        async with cache_store_scope(store, settings) as cache_store:
            entry = await cache_store.lookup(keys, paths, compression, enable_cross_os_archive)
            if entry is None or not entry.archive_location:
                logger.info("Cache not found", keys=keys)
                return None

            if options is not None and options.lookup_only:
                logger.info("Lookup only - skipping download", cache_key=entry.cache_key)
                return entry.cache_key

            transport = select_transport(compression, settings)
            archive_path = create_temp_directory(settings) / compression.file_name
            logger.debug("Archive path", path=str(archive_path))

            await cache_store.download(entry.archive_location, archive_path, options)

        if is_debug(settings):
            members = await transport.list(archive_path)
            if members is not None:
                logger.debug("Archive contents", members=members)

        archive_size = get_archive_file_size(archive_path)
        logger.info(
            f"Cache Size: ~{round(archive_size / (1024 * 1024))} MB ({archive_size} B)"
        )

        await transport.extract(archive_path, settings.base_dir)
        logger.info("Cache restored successfully", cache_key=entry.cache_key)
        return entry.cache_key
    except Exception as error:
        if is_fatal(error):
            raise
        report_failure(error, "restore")
    finally:
        remove_archive(archive_path)

    return None


async def restore_cache_sync(
    paths: Sequence[str],
    primary_key: str,
    options: DownloadOptions | None = None,
    *,
    store: CacheStoreProtocol | None = None,
    settings: Settings | None = None,
) -> str | None:
    """Restore a cache by syncing stored files directly onto paths.

    Only the primary key is considered; there is no prefix fallback.

    Returns:
        The matched key, or None when nothing was restored

    Raises:
        ValidationError: Empty paths or a bad key
    """
    settings = settings or get_settings()
    check_paths(paths)
    check_key(primary_key)
    logger.debug("Resolved keys", keys=[primary_key])

    try:
        async with cache_store_scope(store, settings) as cache_store:
            entry = await cache_store.lookup_sync(primary_key, paths)
            if entry is None or not entry.archive_location:
                logger.info("Cache not found", keys=[primary_key])
                return None

            if options is not None and options.lookup_only:
                logger.info("Lookup only - skipping download", cache_key=entry.cache_key)
                return entry.cache_key

            await cache_store.download_sync(entry.archive_location, paths)

        logger.info("Cache restored successfully", cache_key=entry.cache_key)
        return entry.cache_key
    except Exception as error:
        if is_fatal(error):
            raise
        report_failure(error, "restore")

    return None
