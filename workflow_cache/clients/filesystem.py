"""Directory-backed cache store (file:// cache URL).

Layout under the store root:

    archives/<version>/<quoted key>/<archive file>
    archives/<version>/<quoted key>/entry.json     written last (commit)
    sync/<quoted key>/workspace/<workspace-relative files>
    sync/<quoted key>/absolute/<quoted anchor>/<files outside the workspace>
    sync/<quoted key>.lock                          held during a sync upload

Reservation is an exclusive directory create, so two jobs saving the same
key race on the filesystem and the loser gets a ReserveCacheError.
"""

from __future__ import annotations

import asyncio
import glob
import os
import shutil
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from urllib.parse import quote, unquote, urlparse

from pydantic import BaseModel

from workflow_cache.cache.compression import Compression
from workflow_cache.cache.paths import resolve_paths
from workflow_cache.clients.models import CacheEntry, DownloadOptions, UploadOptions
from workflow_cache.clients.protocols import get_cache_version
from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.exceptions import CacheServiceError, ReserveCacheError
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)

ENTRY_FILE = "entry.json"
WORKSPACE_TREE = "workspace"
ABSOLUTE_TREE = "absolute"


class StoredEntry(BaseModel):
    """Committed archive metadata."""

    key: str
    version: str
    archive_name: str
    size: int
    created_at: datetime


def root_from_url(url: str) -> Path:
    """Store root of a file:// URL."""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise ValueError(f"Not a file:// URL: {url}")
    return Path(unquote(parsed.path))


def _quote_key(key: str) -> str:
    return quote(key, safe="")


def _needs_copy(source: Path, target: Path) -> bool:
    if not target.exists():
        return True
    src_stat, dst_stat = source.stat(), target.stat()
    return src_stat.st_size != dst_stat.st_size or int(src_stat.st_mtime) != int(dst_stat.st_mtime)


def _absolute(pattern: str, base_dir: Path) -> Path:
    expanded = os.path.expanduser(pattern)
    return Path(os.path.normpath(base_dir / expanded))


def _store_name(target: Path, base_dir: Path) -> PurePosixPath:
    """Name of target inside a sync entry.

    Workspace files keep their relative path; anything else is stored under
    its quoted anchor so no name can leave the entry.
    """
    if target.is_relative_to(base_dir):
        return PurePosixPath(WORKSPACE_TREE, *target.relative_to(base_dir).parts)
    return PurePosixPath(ABSOLUTE_TREE, _quote_key(target.anchor), *target.parts[1:])


def _target_of(stored: Path, sync_dir: Path, base_dir: Path) -> Path:
    """Inverse of _store_name."""
    tree, *parts = stored.relative_to(sync_dir).parts
    if tree == WORKSPACE_TREE:
        return base_dir.joinpath(*parts)
    anchor, *rest = parts
    return Path(unquote(anchor)).joinpath(*rest)


def _inside(sync_dir: Path, name: PurePosixPath) -> Path:
    root = Path(os.path.normpath(sync_dir))
    candidate = Path(os.path.normpath(root / name))
    if not candidate.is_relative_to(root):
        raise CacheServiceError(f"Refusing to sync {name} outside of {sync_dir}")
    return candidate


def _match_stored(patterns: Sequence[str], sync_dir: Path, base_dir: Path) -> list[Path]:
    """Expand caller patterns against the stored copy instead of the live filesystem."""
    matched: set[Path] = set()
    for raw in patterns:
        pattern = raw.strip()
        if not pattern or pattern.startswith("#"):
            continue
        excluded = pattern.startswith("!")
        if excluded:
            pattern = pattern[1:].strip()
        name = _store_name(_absolute(pattern, base_dir), base_dir)
        store_pattern = os.path.join(glob.escape(str(sync_dir)), *name.parts)
        found = {
            Path(path)
            for path in glob.glob(store_pattern, recursive=True, include_hidden=True)
            if Path(os.path.normpath(path)).is_relative_to(sync_dir)
        }
        matched = matched - found if excluded else matched | found
    return sorted(matched)


def _sync_pairs(pairs: Sequence[tuple[Path, Path]]) -> int:
    """Copy changed files from each source (file or directory) onto its target."""
    copied = 0
    for source, target in pairs:
        if source.is_dir():
            files = [(p, target / p.relative_to(source)) for p in source.rglob("*") if p.is_file()]
        elif source.is_file():
            files = [(source, target)]
        else:
            continue
        for file, destination in files:
            if _needs_copy(file, destination):
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(file, destination)
                copied += 1
    return copied


class FilesystemCacheStore:
    """Cache store kept in a directory, e.g. a volume shared between runners."""

    def __init__(self, root: Path, settings: Settings | None = None) -> None:
        self._root = Path(root).expanduser()
        self._settings = settings or get_settings()

    @property
    def root(self) -> Path:
        return self._root

    async def close(self) -> None:
        """Nothing to release."""

    # ------------------------------------------------------------------
    # Archive mode
    # ------------------------------------------------------------------

    def _version_dir(self, version: str) -> Path:
        return self._root / "archives" / version

    def _committed(self, version: str) -> list[tuple[StoredEntry, Path]]:
        version_dir = self._version_dir(version)
        if not version_dir.is_dir():
            return []
        entries = []
        for entry_dir in version_dir.iterdir():
            entry_file = entry_dir / ENTRY_FILE
            if not entry_file.is_file():
                continue
            stored = StoredEntry.model_validate_json(entry_file.read_text(encoding="utf-8"))
            entries.append((stored, entry_dir))
        return entries

    def _match(self, keys: Sequence[str], version: str) -> tuple[StoredEntry, Path] | None:
        entries = self._committed(version)
        if not entries or not keys:
            return None
        primary, *restore_keys = keys
        for stored, entry_dir in entries:
            if stored.key == primary:
                return stored, entry_dir
        for prefix in restore_keys:
            candidates = [(s, d) for s, d in entries if s.key.startswith(prefix)]
            if candidates:
                return max(candidates, key=lambda item: item[0].created_at)
        return None

    async def lookup(
        self,
        keys: Sequence[str],
        paths: Sequence[str],
        compression: Compression,
        enable_cross_os_archive: bool = False,
    ) -> CacheEntry | None:
        version = get_cache_version(paths, compression, enable_cross_os_archive)
        match = await asyncio.to_thread(self._match, list(keys), version)
        if match is None:
            return None
        stored, entry_dir = match
        return CacheEntry(
            cache_key=stored.key,
            archive_location=str(entry_dir / stored.archive_name),
            creation_time=stored.created_at,
            cache_version=version,
        )

    async def download(
        self,
        archive_location: str,
        archive_path: Path,
        options: DownloadOptions | None = None,
    ) -> None:
        source = Path(archive_location)
        if not source.is_file():
            raise CacheServiceError(f"Archive not found at {archive_location}")
        await asyncio.to_thread(shutil.copyfile, source, archive_path)

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
        size = cache_size if cache_size is not None else archive_path.stat().st_size
        if size > self._settings.max_cache_size_bytes:
            raise CacheServiceError(f"Cache size of {size} B is over the store limit, not saving cache.")

        version = get_cache_version(paths, compression, enable_cross_os_archive)
        entry_dir = self._version_dir(version) / _quote_key(key)
        entry_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            entry_dir.mkdir()
        except FileExistsError as e:
            raise ReserveCacheError(
                f"Unable to reserve cache with key {key}, another job may be creating this cache."
            ) from e

        try:
            partial = entry_dir / f"{archive_path.name}.partial"
            await asyncio.to_thread(shutil.copyfile, archive_path, partial)
            os.replace(partial, entry_dir / archive_path.name)

            stored = StoredEntry(
                key=key,
                version=version,
                archive_name=archive_path.name,
                size=size,
                created_at=datetime.now(timezone.utc),
            )
            (entry_dir / ENTRY_FILE).write_text(stored.model_dump_json(indent=2), encoding="utf-8")
        except BaseException:
            # Release the reservation so the key can be saved again.
            shutil.rmtree(entry_dir, ignore_errors=True)
            raise
        logger.info("Cache saved", key=key, size=size, store=str(self._root))

    # ------------------------------------------------------------------
    # Sync mode
    # ------------------------------------------------------------------

    def _sync_dir(self, key: str) -> Path:
        return self._root / "sync" / _quote_key(key)

    async def lookup_sync(self, primary_key: str, paths: Sequence[str]) -> CacheEntry | None:
        sync_dir = self._sync_dir(primary_key)
        if not sync_dir.is_dir():
            return None
        return CacheEntry(cache_key=primary_key, archive_location=str(sync_dir))

    async def download_sync(self, archive_location: str, paths: Sequence[str]) -> None:
        sync_dir = Path(os.path.normpath(archive_location))
        if not sync_dir.is_dir():
            raise CacheServiceError(f"Sync entry not found at {archive_location}")
        base_dir = self._settings.base_dir.resolve()
        pairs = [
            (stored, _target_of(stored, sync_dir, base_dir))
            for stored in _match_stored(paths, sync_dir, base_dir)
        ]
        copied = await asyncio.to_thread(_sync_pairs, pairs)
        logger.info("Synced files from cache", files=copied, source=archive_location)

    async def upload_sync(self, key: str, paths: Sequence[str]) -> None:
        sync_dir = self._sync_dir(key)
        sync_dir.parent.mkdir(parents=True, exist_ok=True)
        lock = sync_dir.parent / f"{sync_dir.name}.lock"
        try:
            fd = os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as e:
            raise ReserveCacheError(
                f"Unable to reserve cache with key {key}, another job is syncing this cache."
            ) from e
        os.close(fd)
        try:
            base_dir = self._settings.base_dir.resolve()
            pairs = []
            for relative in resolve_paths(paths, base_dir):
                source = Path(os.path.normpath(base_dir / relative))
                pairs.append((source, _inside(sync_dir, _store_name(source, base_dir))))
            copied = await asyncio.to_thread(_sync_pairs, pairs)
            logger.info("Synced files to cache", key=key, files=copied)
        finally:
            lock.unlink(missing_ok=True)
