"""Cache store protocol and versioning.

Duck typing protocol for remote cache stores - enables fake stores in tests.
"""

from __future__ import annotations

import hashlib
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from workflow_cache.cache.compression import Compression
from workflow_cache.clients.models import CacheEntry, DownloadOptions, UploadOptions
from workflow_cache.core.constants import CACHE_VERSION_SALT, CompressionMethod


@runtime_checkable
class CacheStoreProtocol(Protocol):
    """Protocol for remote cache stores.

    Methods:
        lookup: Ordered exact/prefix match over a key list
        lookup_sync: Exact match on the primary key (sync mode)
        download: Fetch an archive to a local file
        download_sync: Transfer stored files directly onto paths
        upload: Reserve, upload and commit an archive
        upload_sync: Transfer paths directly into the store
        close: Release resources
    """

    async def lookup(
        self,
        keys: Sequence[str],
        paths: Sequence[str],
        compression: Compression,
        enable_cross_os_archive: bool = False,
    ) -> CacheEntry | None:
        """Find the best entry for keys; paths feed the version hash."""
        ...

    async def lookup_sync(self, primary_key: str, paths: Sequence[str]) -> CacheEntry | None:
        """Find the sync entry stored under primary_key."""
        ...

    async def download(
        self,
        archive_location: str,
        archive_path: Path,
        options: DownloadOptions | None = None,
    ) -> None:
        """Download the archive at archive_location into archive_path."""
        ...

    async def download_sync(self, archive_location: str, paths: Sequence[str]) -> None:
        """Sync stored files at archive_location onto paths."""
        ...

    async def upload(
        self,
        key: str,
        paths: Sequence[str],
        archive_path: Path,
        compression: Compression,
        enable_cross_os_archive: bool = False,
        cache_size: int | None = None,
        options: UploadOptions | None = None,
    ) -> None:
        """Store archive_path under key.

        Raises:
            ReserveCacheError: Another job holds the key
        """
        ...

    async def upload_sync(self, key: str, paths: Sequence[str]) -> None:
        """Sync paths into the store under key.

        Raises:
            ReserveCacheError: Another job is syncing the key
        """
        ...

    async def close(self) -> None:
        """Release resources."""
        ...


def get_cache_version(
    paths: Sequence[str],
    compression: Compression | None = None,
    enable_cross_os_archive: bool = False,
    platform: str | None = None,
) -> str:
    """Version hash separating caches of different paths, codecs and OSes.

    Args:
        paths: Path patterns as supplied by the caller
        compression: Compression in use; gzip keeps legacy versions stable
        enable_cross_os_archive: Allow Windows to share caches with other OSes
        platform: Platform name (defaults to sys.platform)

    Returns:
        Hex sha256 digest
    """
    platform = platform or sys.platform
    components = list(paths)
    if compression is not None and (
        compression.custom or compression.method != CompressionMethod.GZIP.value
    ):
        components.append(compression.method)
    if platform == "win32" and not enable_cross_os_archive:
        components.append("windows-only")
    components.append(CACHE_VERSION_SALT)
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()
