"""Path resolution and transient archive files.

resolve_paths expands user-supplied patterns into concrete existing paths,
relative to the workspace root, the way they are stored in archives.
"""

from __future__ import annotations

import glob
import os
import shutil
import tempfile
import uuid
from collections.abc import Sequence
from pathlib import Path

from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)


def _expand(pattern: str, base_dir: Path) -> set[Path]:
    pattern = os.path.expanduser(pattern)
    if not os.path.isabs(pattern):
        pattern = str(base_dir / pattern)
    matches = glob.glob(pattern, recursive=True, include_hidden=True)
    return {Path(os.path.normpath(match)) for match in matches}


def _relative(path: Path, base_dir: Path) -> str:
    relative = os.path.relpath(path, base_dir)
    return relative.replace(os.sep, "/")


def resolve_paths(patterns: Sequence[str], base_dir: Path | None = None) -> list[str]:
    """Expand glob patterns into existing, deduplicated paths.

    Patterns starting with "!" exclude previously matched paths. Blank
    lines and "#" comments are ignored.

    Args:
        patterns: Files, directories and wildcard patterns
        base_dir: Root the patterns and results are relative to

    Returns:
        Sorted paths relative to base_dir using forward slashes
    """
    base_dir = (base_dir or get_settings().base_dir).resolve()
    included: set[Path] = set()
    for raw in patterns:
        pattern = raw.strip()
        if not pattern or pattern.startswith("#"):
            continue
        if pattern.startswith("!"):
            excluded = _expand(pattern[1:].strip(), base_dir)
            included -= excluded
            continue
        included |= {path for path in _expand(pattern, base_dir) if os.path.lexists(path)}

    resolved = sorted({_relative(path, base_dir) for path in included})
    logger.debug("Resolved cache paths", patterns=list(patterns), paths=resolved)
    return resolved


def create_temp_directory(settings: Settings | None = None) -> Path:
    """Create a fresh directory owned by a single save/restore."""
    settings = settings or get_settings()
    root = settings.temp_dir or Path(tempfile.gettempdir())
    folder = Path(root) / f"workflow-cache-{uuid.uuid4().hex}"
    folder.mkdir(parents=True, exist_ok=False)
    return folder


def get_archive_file_size(archive_path: Path) -> int:
    """Size of the archive in bytes."""
    return archive_path.stat().st_size


def remove_archive(archive_path: Path | None) -> None:
    """Delete a transient archive and its containing temp directory.

    Failures are logged and never raised.
    """
    if archive_path is None:
        return
    try:
        archive_path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Failed to delete archive", path=str(archive_path), error=str(e))
    folder = archive_path.parent
    if folder.name.startswith("workflow-cache-"):
        shutil.rmtree(
            folder,
            onexc=lambda _func, path, exc: logger.debug(
                "Failed to delete archive folder", path=path, error=str(exc)
            ),
        )
