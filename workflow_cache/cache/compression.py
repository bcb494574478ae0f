"""Compression method selection.

A single Compression value is resolved per operation and threaded through
archive naming, archive creation/extraction and cache versioning.

- no custom compression: internal codec (zstd or gzip per settings)
- custom "none": system tar, uncompressed
- any other custom value: system tar with --use-compress-program
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import PureWindowsPath

from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.constants import (
    CUSTOM_COMPRESSION_NONE,
    CacheFilename,
    CompressionMethod,
)


@dataclass(frozen=True)
class Compression:
    """Resolved compression for one save or restore.

    Attributes:
        method: Codec name ("gzip", "zstd"), "none", or the custom program
        custom: True when the external archiver is used
    """

    method: str
    custom: bool = False

    @property
    def program(self) -> str | None:
        """Compress program passed to tar, if any."""
        if not self.custom or self.method == CUSTOM_COMPRESSION_NONE:
            return None
        return self.method

    @property
    def program_name(self) -> str | None:
        """Bare executable name of the compress program (no path, no args, no .exe)."""
        if self.program is None:
            return None
        executable = shlex.split(self.program)[0]
        name = PureWindowsPath(executable).name
        if name.lower().endswith(".exe"):
            name = name[: -len(".exe")]
        return name

    @property
    def windows_program(self) -> str | None:
        """Decompressor binary looked up by name on Windows runners."""
        if self.program_name is None:
            return None
        return f"{self.program_name}.exe"

    @property
    def file_name(self) -> str:
        """Archive file name for this compression."""
        if not self.custom:
            if self.method == CompressionMethod.GZIP.value:
                return CacheFilename.GZIP.value
            return CacheFilename.ZSTD.value
        if self.program_name is None:
            return CacheFilename.TAR.value
        return f"{CacheFilename.TAR.value}.{self.program_name}"

    @property
    def codec(self) -> CompressionMethod:
        """Internal codec; only meaningful when not custom."""
        if self.custom:
            raise ValueError(f"Custom compression {self.method!r} has no internal codec")
        return CompressionMethod(self.method)


def resolve_compression(
    custom_compression: str | None = None,
    settings: Settings | None = None,
) -> Compression:
    """Resolve the caller's custom-compression input to a Compression.

    Args:
        custom_compression: Custom compress program, "none", or None/empty
            for the internal codec
        settings: Settings providing the default internal codec

    Returns:
        Compression used for the whole operation
    """
    value = (custom_compression or "").strip()
    if value:
        return Compression(method=value, custom=True)
    settings = settings or get_settings()
    return Compression(method=CompressionMethod(settings.default_compression).value)
