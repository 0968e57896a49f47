"""Custom exception hierarchy for the mountfs adapter layer.

Every public operation either returns a normalized value or raises exactly
one of these.  ``ErrorKind`` makes the failure kind enumerable so callers can
branch on ``exc.kind`` instead of on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds shared by every adapter."""

    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    UNSUPPORTED = "unsupported"
    ADAPTER = "adapter"


class MountFSError(Exception):
    """Base exception for all mountfs errors."""

    kind: ErrorKind = ErrorKind.ADAPTER

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.operation = operation


class PathNotFoundError(MountFSError):
    """Raised when a file or directory path does not exist."""

    kind = ErrorKind.NOT_FOUND


class MountNotFoundError(MountFSError):
    """Raised when no mount matches the given abstract path."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(MountFSError):
    """Raised when a node of the wrong type is in the way."""

    kind = ErrorKind.ALREADY_EXISTS


class DirectoryNotEmptyError(AlreadyExistsError):
    """Raised on a non-recursive delete of a directory that has children."""


class UnsupportedOperationError(MountFSError):
    """Raised when a backend cannot express the requested operation.

    This is a design-time gap, not a transient condition.  Do not retry.
    """

    kind = ErrorKind.UNSUPPORTED


class AdapterError(MountFSError):
    """Raised on transport, protocol, authentication or other technical failures."""

    kind = ErrorKind.ADAPTER
