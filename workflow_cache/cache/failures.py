"""Failure classification for the save/restore pipelines.

Caching is an optimization: only caller input errors reach the caller.
Everything else is reported here and the pipeline degrades to
"cache not used".
"""

from __future__ import annotations

from workflow_cache.core.exceptions import ErrorKind, classify_error
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)


def is_fatal(error: BaseException) -> bool:
    """Whether error must propagate to the caller."""
    return classify_error(error) is ErrorKind.VALIDATION


def report_failure(error: BaseException, action: str) -> ErrorKind:
    """Log a swallowed failure at the level its kind deserves.

    Args:
        error: The caught exception
        action: "save" or "restore"

    Returns:
        The error's kind
    """
    kind = classify_error(error)
    if kind is ErrorKind.RESERVATION_CONFLICT:
        logger.info(f"Failed to {action}: {error}", kind=kind.value)
    else:
        logger.warning(
            f"Failed to {action}: {error}",
            kind=kind.value,
            error_type=type(error).__name__,
        )
    return kind
