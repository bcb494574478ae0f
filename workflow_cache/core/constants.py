"""Cache constants and limits.

Provides centralized constants for:
- Key validation limits
- Compression methods and archive file names
- Cache service API paths
- Default timeout values
"""

from enum import Enum


# =============================================================================
# Key Limits
# =============================================================================

MAX_KEY_LENGTH: int = 512
MAX_KEY_COUNT: int = 10

# Bumped whenever the archive layout changes so old entries stop matching.
CACHE_VERSION_SALT: str = "1.0"


# =============================================================================
# Compression
# =============================================================================

class CompressionMethod(str, Enum):
    """Codecs handled by the internal archive codec."""
    GZIP = "gzip"
    ZSTD = "zstd"


class CacheFilename(str, Enum):
    """Archive file names per codec."""
    GZIP = "cache.tgz"
    ZSTD = "cache.tzst"
    TAR = "cache.tar"


# Custom-compression sentinel: external tar without a compress program.
CUSTOM_COMPRESSION_NONE: str = "none"


# =============================================================================
# Cache Service API
# =============================================================================

CACHE_SERVICE_API_PATH: str = "_apis/artifactcache/"
CACHE_SERVICE_API_VERSION: str = "6.0-preview.1"
ENDPOINT_CACHE: str = "cache"
ENDPOINT_CACHES: str = "caches"

DEFAULT_UPLOAD_CHUNK_SIZE: int = 32 * 1024 * 1024  # 32MB
DEFAULT_UPLOAD_CONCURRENCY: int = 4
DEFAULT_MAX_CACHE_SIZE_BYTES: int = 10 * 1024 * 1024 * 1024  # 10GB
DOWNLOAD_BUFFER_SIZE: int = 1024 * 1024


# =============================================================================
# Default Timeout Values
# =============================================================================

class Timeouts:
    """Default timeout values in seconds.

    These can be overridden via Settings.
    """
    HTTP_DEFAULT: float = 30.0
    DOWNLOAD: float = 600.0  # archives can be several GB

    # Retry backoff
    RETRY_INITIAL_DELAY: float = 1.0
    RETRY_BACKOFF_FACTOR: float = 2.0
