"""Core module - Configuration, logging, HTTP clients, and shared constants.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - CacheHTTPClientFactory: HTTP clients for the cache service
    - Exception classes and classify_error
"""

from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.constants import (
    MAX_KEY_COUNT,
    MAX_KEY_LENGTH,
    CacheFilename,
    CompressionMethod,
    Timeouts,
)
from workflow_cache.core.exceptions import (
    ArchiveError,
    CacheError,
    CacheServiceError,
    ErrorKind,
    PathResolutionError,
    ReserveCacheError,
    ValidationError,
    classify_error,
)
from workflow_cache.core.http import CacheHTTPClientFactory
from workflow_cache.core.logging import configure_logging, get_logger, is_debug


__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    "is_debug",
    # HTTP Clients
    "CacheHTTPClientFactory",
    # Constants
    "MAX_KEY_COUNT",
    "MAX_KEY_LENGTH",
    "CacheFilename",
    "CompressionMethod",
    "Timeouts",
    # Exceptions
    "ArchiveError",
    "CacheError",
    "CacheServiceError",
    "ErrorKind",
    "PathResolutionError",
    "ReserveCacheError",
    "ValidationError",
    "classify_error",
]
