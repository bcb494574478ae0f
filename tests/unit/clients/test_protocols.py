"""Unit tests for cache versioning."""

import hashlib

from workflow_cache.cache.compression import Compression
from workflow_cache.clients.protocols import get_cache_version


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TestGetCacheVersion:
    """Version hashing over paths, compression and platform."""

    def test_zstd(self) -> None:
        version = get_cache_version(["node_modules"], Compression(method="zstd"), platform="linux")

        assert version == _sha256("node_modules|zstd|1.0")

    def test_gzip_omits_method(self) -> None:
        version = get_cache_version(["a", "b"], Compression(method="gzip"), platform="linux")

        assert version == _sha256("a|b|1.0")

    def test_custom_program_included(self) -> None:
        version = get_cache_version(["a"], Compression(method="lz4", custom=True), platform="linux")

        assert version == _sha256("a|lz4|1.0")

    def test_windows_only(self) -> None:
        version = get_cache_version(["a"], Compression(method="zstd"), platform="win32")

        assert version == _sha256("a|zstd|windows-only|1.0")

    def test_cross_os_on_windows(self) -> None:
        windows = get_cache_version(["a"], Compression(method="zstd"), True, platform="win32")
        linux = get_cache_version(["a"], Compression(method="zstd"), True, platform="linux")

        assert windows == linux

    def test_path_order_matters(self) -> None:
        zstd = Compression(method="zstd")

        assert get_cache_version(["a", "b"], zstd, platform="linux") != get_cache_version(
            ["b", "a"], zstd, platform="linux"
        )

    def test_custom_gzip_differs_from_internal_gzip(self) -> None:
        internal = get_cache_version(["a"], Compression(method="gzip"), platform="linux")
        custom = get_cache_version(["a"], Compression(method="gzip", custom=True), platform="linux")

        assert internal != custom
