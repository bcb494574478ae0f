"""Archive creation and extraction.

TarCodec is the internal codec (tarfile + zstandard). When a custom
compress program is requested the system archiver runs as an external
process instead. ArchiveTransport hides that choice from the pipelines:

- InternalCodecTransport: TarCodec in a worker thread
- ExternalProcessTransport(PosixQuoting): tar invoked with an argv list
- ExternalProcessTransport(WindowsQuoting): bundled tar.exe invoked with a
  quoted command line, paths converted to forward slashes
"""

from __future__ import annotations

import asyncio
import os
import shlex
import shutil
import sys
import tarfile
from collections.abc import Sequence
from pathlib import Path
from typing import IO, Protocol, runtime_checkable

import zstandard

from workflow_cache.cache.compression import Compression
from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.constants import CompressionMethod
from workflow_cache.core.exceptions import ArchiveError
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Internal codec
# =============================================================================

class TarCodec:
    """Tar archives compressed with gzip or zstd, in-process.

    Members are stored relative to the workspace root, so paths outside
    the workspace keep their "../" prefix, matching tar -P.
    """

    def __init__(self, zstd_level: int = 3) -> None:
        self.zstd_level = zstd_level

    def create(
        self,
        archive_folder: Path,
        paths: Sequence[str],
        method: CompressionMethod,
        base_dir: Path,
        file_name: str,
    ) -> Path:
        """Write an archive of paths into archive_folder and return its path."""
        archive_path = archive_folder / file_name
        with archive_path.open("wb") as fh:
            if method is CompressionMethod.GZIP:
                with tarfile.open(fileobj=fh, mode="w:gz", format=tarfile.PAX_FORMAT) as tar:
                    self._add_all(tar, paths, base_dir)
            else:
                compressor = zstandard.ZstdCompressor(level=self.zstd_level)
                with compressor.stream_writer(fh, closefd=False) as writer:
                    with tarfile.open(fileobj=writer, mode="w|", format=tarfile.PAX_FORMAT) as tar:
                        self._add_all(tar, paths, base_dir)
        return archive_path

    def extract(self, archive_path: Path, method: CompressionMethod, base_dir: Path) -> None:
        """Extract every member onto base_dir."""
        base_dir.mkdir(parents=True, exist_ok=True)
        with archive_path.open("rb") as fh, self._open_reader(fh, method) as tar:
            tar.extractall(path=base_dir, filter="fully_trusted")

    def list(self, archive_path: Path, method: CompressionMethod) -> list[str]:
        """Member names, for debug output."""
        with archive_path.open("rb") as fh, self._open_reader(fh, method) as tar:
            return [member.name for member in tar]

    def _open_reader(self, fh: IO[bytes], method: CompressionMethod) -> tarfile.TarFile:
        if method is CompressionMethod.GZIP:
            return tarfile.open(fileobj=fh, mode="r:gz")
        reader = zstandard.ZstdDecompressor().stream_reader(fh, closefd=False)
        return tarfile.open(fileobj=reader, mode="r|")

    @staticmethod
    def _add_all(tar: tarfile.TarFile, paths: Sequence[str], base_dir: Path) -> None:
        for path in paths:
            tar.add(str(base_dir / path), arcname=path, recursive=True)


# =============================================================================
# Transports
# =============================================================================

@runtime_checkable
class ArchiveTransport(Protocol):
    """Strategy producing and consuming the local archive."""

    async def create(self, archive_path: Path, paths: Sequence[str], base_dir: Path) -> None:
        """Archive paths (relative to base_dir) into archive_path."""
        ...

    async def extract(self, archive_path: Path, base_dir: Path) -> None:
        """Extract archive_path onto base_dir."""
        ...

    async def list(self, archive_path: Path) -> list[str] | None:
        """Archive members, or None when listing is not available."""
        ...


class InternalCodecTransport:
    """Runs TarCodec in a worker thread."""

    def __init__(self, compression: Compression, codec: TarCodec | None = None) -> None:
        self.compression = compression
        self.codec = codec or TarCodec()

    async def create(self, archive_path: Path, paths: Sequence[str], base_dir: Path) -> None:
        await asyncio.to_thread(
            self.codec.create,
            archive_path.parent,
            list(paths),
            self.compression.codec,
            base_dir,
            archive_path.name,
        )

    async def extract(self, archive_path: Path, base_dir: Path) -> None:
        await asyncio.to_thread(self.codec.extract, archive_path, self.compression.codec, base_dir)

    async def list(self, archive_path: Path) -> list[str] | None:
        return await asyncio.to_thread(self.codec.list, archive_path, self.compression.codec)


def to_tar_path(path: str | Path) -> str:
    """Forward-slash form of a path, as the Windows archiver expects."""
    return str(path).replace("\\", "/")


class PosixQuoting:
    """Argument list executed without a shell; no quoting needed."""

    def __init__(self, tar_program: str) -> None:
        self.tar_program = tar_program

    def create_args(
        self, compression: Compression, archive_path: Path, paths: Sequence[str], base_dir: Path
    ) -> list[str]:
        args = [self.tar_program, "--posix", "-cf", str(archive_path), "--exclude", str(archive_path)]
        args += ["-P", "-C", str(base_dir)]
        if compression.program is not None:
            args.append(f"--use-compress-program={compression.program}")
        args += list(paths)
        return args

    def extract_args(self, compression: Compression, archive_path: Path, base_dir: Path) -> list[str]:
        args = [self.tar_program, "-xf", str(archive_path), "-P", "-C", str(base_dir)]
        if compression.program is not None:
            args.append(f"--use-compress-program={compression.program}")
        return args

    def render(self, args: list[str]) -> str:
        return shlex.join(args)

    async def spawn(self, args: list[str]) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )


class WindowsQuoting:
    """Quoted command line for the bundled Windows archiver.

    Every path is double-quoted (paths may contain spaces) and converted to
    forward slashes.
    """

    def __init__(self, tar_program: str) -> None:
        self.tar_program = tar_program

    @staticmethod
    def quote(value: str | Path) -> str:
        return f'"{to_tar_path(value)}"'

    def _compress_args(self, compression: Compression) -> list[str]:
        if compression.windows_program is None:
            return []
        return [f'--use-compress-program="{compression.windows_program}"']

    def create_args(
        self, compression: Compression, archive_path: Path, paths: Sequence[str], base_dir: Path
    ) -> list[str]:
        archive = self.quote(archive_path)
        args = [f'"{self.tar_program}"', "--posix", *self._compress_args(compression)]
        args += ["-cf", archive, "--exclude", archive, "-P", "-C", self.quote(base_dir)]
        args += [self.quote(path) for path in paths]
        return args

    def extract_args(self, compression: Compression, archive_path: Path, base_dir: Path) -> list[str]:
        args = [f'"{self.tar_program}"', *self._compress_args(compression)]
        args += ["-xf", self.quote(archive_path), "-P", "-C", self.quote(base_dir)]
        return args

    def render(self, args: list[str]) -> str:
        return " ".join(args)

    async def spawn(self, args: list[str]) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_shell(
            self.render(args),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )


class QuotingRule(Protocol):
    def create_args(
        self, compression: Compression, archive_path: Path, paths: Sequence[str], base_dir: Path
    ) -> list[str]: ...

    def extract_args(self, compression: Compression, archive_path: Path, base_dir: Path) -> list[str]: ...

    def render(self, args: list[str]) -> str: ...

    async def spawn(self, args: list[str]) -> asyncio.subprocess.Process: ...


class ExternalProcessTransport:
    """Runs the system archiver with a custom compress program."""

    def __init__(self, compression: Compression, quoting: QuotingRule) -> None:
        self.compression = compression
        self.quoting = quoting

    async def create(self, archive_path: Path, paths: Sequence[str], base_dir: Path) -> None:
        args = self.quoting.create_args(self.compression, archive_path, paths, base_dir)
        await self._run(args)

    async def extract(self, archive_path: Path, base_dir: Path) -> None:
        logger.info("Extracting archive", archive=str(archive_path), base_dir=str(base_dir))
        args = self.quoting.extract_args(self.compression, archive_path, base_dir)
        await self._run(args)

    async def list(self, archive_path: Path) -> list[str] | None:
        logger.debug("Archive listing unavailable with custom compression")
        return None

    async def _run(self, args: list[str]) -> None:
        command = self.quoting.render(args)
        logger.debug("Executing archiver", command=command)
        try:
            process = await self.quoting.spawn(args)
        except OSError as e:
            raise ArchiveError(f"Failed to start archiver: {e}", command=command) from e

        stdout, stderr = await process.communicate()
        if stdout:
            logger.debug("Archiver output", output=stdout.decode(errors="replace").strip())
        if process.returncode != 0:
            error_output = stderr.decode(errors="replace").strip()
            raise ArchiveError(
                f"Archiver exited with code {process.returncode}: {error_output}",
                command=command,
                returncode=process.returncode,
                stderr=error_output,
            )


# =============================================================================
# Selection
# =============================================================================

def get_windows_tar_path(settings: Settings | None = None) -> str:
    """Locate the archiver bundled with Windows runners.

    Prefers GNU tar shipped with Git for Windows, then the system BSD tar.
    """
    settings = settings or get_settings()
    if settings.windows_tar_path is not None:
        return str(settings.windows_tar_path)
    system_drive = os.environ.get("SystemDrive", "C:")
    gnu_tar = Path(f"{system_drive}\\Program Files\\Git\\usr\\bin\\tar.exe")
    if gnu_tar.exists():
        return str(gnu_tar)
    return f"{system_drive}\\Windows\\System32\\tar.exe"


def get_posix_tar_path(settings: Settings | None = None) -> str:
    """Absolute path of the system archiver."""
    settings = settings or get_settings()
    found = shutil.which(settings.tar_program)
    if found is None:
        raise ArchiveError(f"Archiver {settings.tar_program!r} not found on PATH")
    return found


def select_transport(
    compression: Compression,
    settings: Settings | None = None,
    platform: str | None = None,
) -> ArchiveTransport:
    """Pick the archive transport once per operation.

    Args:
        compression: Resolved compression for the operation
        settings: Settings with archiver locations and codec level
        platform: Platform name (defaults to sys.platform)
    """
    settings = settings or get_settings()
    platform = platform or sys.platform
    if not compression.custom:
        return InternalCodecTransport(compression, TarCodec(zstd_level=settings.zstd_level))
    if platform == "win32":
        return ExternalProcessTransport(compression, WindowsQuoting(get_windows_tar_path(settings)))
    return ExternalProcessTransport(compression, PosixQuoting(get_posix_tar_path(settings)))
