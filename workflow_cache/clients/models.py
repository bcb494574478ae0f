"""Cache store data models.

Wire payloads of the cache service and the options accepted by store
operations.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from workflow_cache.core.constants import DEFAULT_UPLOAD_CHUNK_SIZE, DEFAULT_UPLOAD_CONCURRENCY


class CacheEntry(BaseModel):
    """Remote cache record returned by a lookup.

    A missing archive_location means no usable entry was found.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cache_key: str | None = Field(default=None, alias="cacheKey")
    archive_location: str | None = Field(default=None, alias="archiveLocation")
    scope: str | None = None
    creation_time: datetime | None = Field(default=None, alias="creationTime")
    cache_version: str | None = Field(default=None, alias="cacheVersion")


class ReserveCacheRequest(BaseModel):
    """Body of a cache reservation."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    version: str
    cache_size: int | None = Field(default=None, alias="cacheSize")


class ReserveCacheResponse(BaseModel):
    """Reservation result; cache_id is absent when the key is taken."""

    model_config = ConfigDict(populate_by_name=True)

    cache_id: int | None = Field(default=None, alias="cacheId")


class CommitCacheRequest(BaseModel):
    """Body finalizing an upload."""

    size: int = Field(..., ge=0)


class DownloadOptions(BaseModel):
    """Options for restoring a cache."""

    model_config = ConfigDict(frozen=True)

    lookup_only: bool = Field(
        default=False,
        description="Report whether an entry exists without downloading it",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Override of the archive download timeout",
    )


class UploadOptions(BaseModel):
    """Options for saving a cache."""

    model_config = ConfigDict(frozen=True)

    upload_chunk_size: int = Field(default=DEFAULT_UPLOAD_CHUNK_SIZE, gt=0)
    upload_concurrency: int = Field(default=DEFAULT_UPLOAD_CONCURRENCY, ge=1, le=32)
