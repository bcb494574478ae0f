"""Custom exceptions for the workflow cache.

Every exception carries an explicit ErrorKind tag. Pipelines decide whether
to propagate or swallow a failure by switching on the tag, never on class
names.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure categories."""
    VALIDATION = "validation"
    RESERVATION_CONFLICT = "reservation_conflict"
    INFRASTRUCTURE = "infrastructure"


class CacheError(Exception):
    """Base exception for all cache errors.

    All cache exceptions inherit from this class to enable
    catching any cache error with a single except clause.
    """

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE


class ValidationError(CacheError):
    """Raised when caller input is malformed (bad key, empty path set).

    Always fatal and propagated verbatim.
    """

    kind = ErrorKind.VALIDATION


class PathResolutionError(CacheError):
    """Raised when the paths given for saving resolve to nothing.

    Distinct from ValidationError: the input is well-formed, but there is
    nothing on disk to cache.
    """

    kind = ErrorKind.VALIDATION


class ReserveCacheError(CacheError):
    """Raised when another job already holds a reservation for the key."""

    kind = ErrorKind.RESERVATION_CONFLICT


class CacheServiceError(CacheError):
    """Raised when the remote cache store fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize service error.

        Args:
            message: Error description
            status_code: HTTP status code if applicable
        """
        self.status_code = status_code
        super().__init__(message)


class ArchiveError(CacheError):
    """Raised when creating, listing or extracting an archive fails."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        returncode: int | None = None,
        stderr: str | None = None,
    ) -> None:
        """Initialize archive error.

        Args:
            message: Error description
            command: External archiver command line, if one was run
            returncode: Exit status of the archiver
            stderr: Captured error output of the archiver
        """
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


def classify_error(error: BaseException) -> ErrorKind:
    """Return the failure category of an exception.

    Anything that is not a CacheError (network, OS, codec errors) counts
    as infrastructure.
    """
    if isinstance(error, CacheError):
        return error.kind
    return ErrorKind.INFRASTRUCTURE
