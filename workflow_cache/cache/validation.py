"""Key and path validation.

Pure, synchronous checks run before any I/O. The errors raised here are
the only ones the save/restore pipelines propagate unmodified.
"""

from __future__ import annotations

from collections.abc import Sequence

from workflow_cache.core.constants import MAX_KEY_COUNT, MAX_KEY_LENGTH
from workflow_cache.core.exceptions import ValidationError


def check_paths(paths: Sequence[str] | None) -> None:
    """Require at least one path."""
    if not paths:
        raise ValidationError(
            "Path Validation Error: At least one directory or file path is required"
        )


def check_key(key: str) -> None:
    """Reject keys longer than 512 characters or containing a comma."""
    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(
            f"Key Validation Error: {key} cannot be larger than {MAX_KEY_LENGTH} characters."
        )
    if "," in key:
        raise ValidationError(f"Key Validation Error: {key} cannot contain commas.")


def check_keys(keys: Sequence[str]) -> None:
    """Validate a resolved key list (primary key followed by restore keys)."""
    if len(keys) > MAX_KEY_COUNT:
        raise ValidationError(
            f"Key Validation Error: Keys are limited to a maximum of {MAX_KEY_COUNT}."
        )
    for key in keys:
        check_key(key)
