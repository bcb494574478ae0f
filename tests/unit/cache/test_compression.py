"""Unit tests for workflow_cache.cache.compression."""

import pytest

from workflow_cache.cache.compression import Compression, resolve_compression
from workflow_cache.core.config import Settings
from workflow_cache.core.constants import CompressionMethod


@pytest.fixture
def gzip_settings() -> Settings:
    return Settings(_env_file=None, default_compression="gzip")


class TestResolveCompression:
    """Tests for resolve_compression."""

    @pytest.mark.parametrize("custom", [None, "", "   "])
    def test_no_custom_compression_uses_internal_codec(
        self, custom: str | None, settings: Settings
    ) -> None:
        compression = resolve_compression(custom, settings)

        assert compression.custom is False
        assert compression.method == "zstd"
        assert compression.codec is CompressionMethod.ZSTD
        assert compression.file_name == "cache.tzst"

    def test_default_codec_follows_settings(self, gzip_settings: Settings) -> None:
        compression = resolve_compression(None, gzip_settings)

        assert compression.codec is CompressionMethod.GZIP
        assert compression.file_name == "cache.tgz"

    def test_none_sentinel_means_plain_tar(self, settings: Settings) -> None:
        compression = resolve_compression("none", settings)

        assert compression.custom is True
        assert compression.program is None
        assert compression.windows_program is None
        assert compression.file_name == "cache.tar"

    def test_custom_program(self, settings: Settings) -> None:
        compression = resolve_compression("lz4", settings)

        assert compression.custom is True
        assert compression.program == "lz4"
        assert compression.windows_program == "lz4.exe"
        assert compression.file_name == "cache.tar.lz4"

    def test_custom_program_with_arguments_and_path(self, settings: Settings) -> None:
        compression = resolve_compression("/usr/bin/zstd -T0", settings)

        assert compression.program == "/usr/bin/zstd -T0"
        assert compression.program_name == "zstd"
        assert compression.file_name == "cache.tar.zstd"

    def test_windows_program_strips_exe(self) -> None:
        compression = Compression(method="C:\\tools\\lz4.exe", custom=True)

        assert compression.program_name == "lz4"
        assert compression.windows_program == "lz4.exe"

    def test_resolution_is_deterministic(self, settings: Settings) -> None:
        assert resolve_compression("lz4", settings) == resolve_compression("lz4", settings)

    def test_custom_compression_has_no_internal_codec(self) -> None:
        with pytest.raises(ValueError):
            Compression(method="lz4", custom=True).codec
