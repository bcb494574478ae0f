"""Cache service HTTP client.

Async client for the artifact cache REST API:
- GET   cache?keys=..&version=..  entry lookup (204 = miss)
- POST  caches                    reserve a key
- PATCH caches/{id}               upload a byte range
- POST  caches/{id}               commit the upload

Archives are downloaded from the opaque archiveLocation returned by a
lookup, with a client that carries no service credentials.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import TypeVar

import httpx

from workflow_cache.cache.compression import Compression
from workflow_cache.clients.models import (
    CacheEntry,
    CommitCacheRequest,
    DownloadOptions,
    ReserveCacheRequest,
    ReserveCacheResponse,
    UploadOptions,
)
from workflow_cache.clients.protocols import get_cache_version
from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.constants import (
    DOWNLOAD_BUFFER_SIZE,
    ENDPOINT_CACHE,
    ENDPOINT_CACHES,
    Timeouts,
)
from workflow_cache.core.exceptions import CacheServiceError, ReserveCacheError
from workflow_cache.core.http import CacheHTTPClientFactory
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        return str(message) if message else None
    return None


class CacheServiceClient:
    """HTTP client for the cache service.

    Uses a single lazily-created httpx.AsyncClient for service calls
    (connection pooling). Sync transfers are not offered by this service.

    Example:
        >>> client = CacheServiceClient(settings=Settings(cache_url="https://cache.example/"))
        >>> entry = await client.lookup(["npm-abc"], ["~/.npm"], resolve_compression())
        >>> await client.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        factory: CacheHTTPClientFactory | None = None,
    ) -> None:
        """Initialize the cache service client.

        Args:
            settings: Application settings. Uses get_settings() if not provided.
            factory: HTTP client factory (defaults to one built from settings)
        """
        self._settings = settings or get_settings()
        self._factory = factory or CacheHTTPClientFactory(self._settings)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the service HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = self._factory.create_service_client()
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run call, retrying server and transport errors with exponential backoff."""
        attempt = 0
        while True:
            try:
                return await call()
            except (httpx.HTTPStatusError, httpx.TransportError) as e:
                if attempt >= self._settings.http_max_retries or not _is_retryable(e):
                    raise
                attempt += 1
                delay = Timeouts.RETRY_INITIAL_DELAY * (Timeouts.RETRY_BACKOFF_FACTOR ** (attempt - 1))
                logger.debug(
                    "Retrying cache service call",
                    operation=operation,
                    attempt=attempt,
                    delay=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def lookup(
        self,
        keys: Sequence[str],
        paths: Sequence[str],
        compression: Compression,
        enable_cross_os_archive: bool = False,
    ) -> CacheEntry | None:
        """Query the service for the first key with a stored entry.

        Returns:
            Matching entry, or None on a miss (HTTP 204)

        Raises:
            CacheServiceError: On any other non-success status
        """
        client = await self._get_client()
        version = get_cache_version(paths, compression, enable_cross_os_archive)
        params = {"keys": ",".join(keys), "version": version}

        async def _get() -> httpx.Response:
            response = await client.get(ENDPOINT_CACHE, params=params)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        try:
            response = await self._with_retry("lookup", _get)
        except httpx.HTTPError as e:
            raise CacheServiceError(f"Cache lookup failed: {e}") from e

        if response.status_code == httpx.codes.NO_CONTENT:
            logger.debug("No cache entry found", keys=list(keys), version=version)
            return None
        if not response.is_success:
            raise CacheServiceError(
                f"Cache service responded with {response.status_code}",
                status_code=response.status_code,
            )

        entry = CacheEntry.model_validate(response.json())
        logger.debug("Cache entry found", cache_key=entry.cache_key, scope=entry.scope)
        return entry

    async def lookup_sync(self, primary_key: str, paths: Sequence[str]) -> CacheEntry | None:
        raise CacheServiceError("Sync transfers are not supported by the cache service")

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    async def download(
        self,
        archive_location: str,
        archive_path: Path,
        options: DownloadOptions | None = None,
    ) -> None:
        """Stream the archive at archive_location into archive_path.

        Raises:
            CacheServiceError: On HTTP errors or a short download
        """
        timeout = options.timeout_seconds if options else None
        async with self._factory.create_download_client(timeout=timeout) as client:
            try:
                await self._with_retry(
                    "download",
                    lambda: self._stream_to_file(client, archive_location, archive_path),
                )
            except httpx.HTTPError as e:
                raise CacheServiceError(f"Archive download failed: {e}") from e

    async def _stream_to_file(
        self, client: httpx.AsyncClient, url: str, archive_path: Path
    ) -> None:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            expected = response.headers.get("Content-Length")
            written = 0
            with archive_path.open("wb") as fh:
                async for chunk in response.aiter_raw(DOWNLOAD_BUFFER_SIZE):
                    fh.write(chunk)
                    written += len(chunk)

        if expected is not None and int(expected) != written:
            raise CacheServiceError(
                f"Incomplete download. Expected file size: {expected}, actual file size: {written}"
            )
        logger.debug("Archive downloaded", path=str(archive_path), size=written)

    async def download_sync(self, archive_location: str, paths: Sequence[str]) -> None:
        raise CacheServiceError("Sync transfers are not supported by the cache service")

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

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
        """Reserve key, upload archive_path in chunks and commit it.

        Raises:
            ReserveCacheError: The key is already reserved by another job
            CacheServiceError: Size limit exceeded or service failure
        """
        size = cache_size if cache_size is not None else archive_path.stat().st_size
        if size > self._settings.max_cache_size_bytes:
            raise CacheServiceError(
                f"Cache size of ~{round(size / (1024 * 1024))} MB ({size} B) is over the "
                f"{round(self._settings.max_cache_size_bytes / (1024 ** 3))}GB limit, not saving cache."
            )

        version = get_cache_version(paths, compression, enable_cross_os_archive)
        cache_id = await self._reserve(key, version, size)
        logger.debug("Cache reserved", key=key, cache_id=cache_id)

        options = options or UploadOptions(
            upload_chunk_size=self._settings.upload_chunk_size,
            upload_concurrency=self._settings.upload_concurrency,
        )
        await self._upload_chunks(cache_id, archive_path, size, options)
        await self._commit(cache_id, size)
        logger.info("Cache saved", key=key, size=size)

    async def _reserve(self, key: str, version: str, size: int) -> int:
        client = await self._get_client()
        body = ReserveCacheRequest(key=key, version=version, cache_size=size)
        try:
            response = await client.post(
                ENDPOINT_CACHES, json=body.model_dump(by_alias=True, exclude_none=True)
            )
        except httpx.HTTPError as e:
            raise CacheServiceError(f"Cache reservation failed: {e}") from e

        message = _error_message(response)
        if response.status_code == httpx.codes.BAD_REQUEST:
            raise CacheServiceError(
                message or f"Cache size of ~{round(size / (1024 * 1024))} MB ({size} B) "
                "is over the data cap limit, not saving cache.",
                status_code=response.status_code,
            )
        cache_id = None
        if response.is_success:
            cache_id = ReserveCacheResponse.model_validate(response.json()).cache_id
        if cache_id is None:
            if response.status_code >= 500:
                raise CacheServiceError(
                    f"Cache reservation failed with {response.status_code}",
                    status_code=response.status_code,
                )
            raise ReserveCacheError(
                f"Unable to reserve cache with key {key}, another job may be creating "
                f"this cache. More details: {message}"
            )
        return cache_id

    async def _upload_chunks(
        self, cache_id: int, archive_path: Path, size: int, options: UploadOptions
    ) -> None:
        client = await self._get_client()
        semaphore = asyncio.Semaphore(options.upload_concurrency)
        url = f"{ENDPOINT_CACHES}/{cache_id}"

        def _read(offset: int, length: int) -> bytes:
            with archive_path.open("rb") as fh:
                fh.seek(offset)
                return fh.read(length)

        async def _patch(data: bytes, start: int, end: int) -> None:
            response = await client.patch(
                url,
                content=data,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Range": f"bytes {start}-{end}/*",
                },
            )
            response.raise_for_status()

        async def _upload_chunk(start: int) -> None:
            end = min(start + options.upload_chunk_size, size) - 1
            async with semaphore:
                data = await asyncio.to_thread(_read, start, end - start + 1)
                logger.debug("Uploading chunk", cache_id=cache_id, start=start, end=end)
                await self._with_retry("upload", lambda: _patch(data, start, end))

        # A failed chunk cancels the chunks still in flight.
        try:
            async with asyncio.TaskGroup() as group:
                for start in range(0, size, options.upload_chunk_size):
                    group.create_task(_upload_chunk(start))
        except ExceptionGroup as group_error:
            error = group_error.exceptions[0]
            if isinstance(error, httpx.HTTPError):
                raise CacheServiceError(f"Cache upload failed: {error}") from error
            raise error

    async def _commit(self, cache_id: int, size: int) -> None:
        client = await self._get_client()
        body = CommitCacheRequest(size=size)
        async def _post() -> httpx.Response:
            response = await client.post(f"{ENDPOINT_CACHES}/{cache_id}", json=body.model_dump())
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        try:
            response = await self._with_retry("commit", _post)
        except httpx.HTTPError as e:
            raise CacheServiceError(f"Cache commit failed: {e}") from e
        if not response.is_success:
            raise CacheServiceError(
                f"Cache service responded with {response.status_code} during commit.",
                status_code=response.status_code,
            )

    async def upload_sync(self, key: str, paths: Sequence[str]) -> None:
        raise CacheServiceError("Sync transfers are not supported by the cache service")
