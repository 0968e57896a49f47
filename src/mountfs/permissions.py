"""Permission enum for mounts and POSIX mode predicates."""

from __future__ import annotations

from enum import Enum

# Three-class (owner/group/other) masks for each permission
READ_BITS = 0o444
WRITE_BITS = 0o222
EXECUTE_BITS = 0o111


class Permission(str, Enum):
    """Permission level for a mount point."""

    READ_WRITE = "read_write"
    READ_ONLY = "read_only"


def mode_is_readable(mode: int) -> bool:
    return bool(mode & READ_BITS)


def mode_is_writable(mode: int) -> bool:
    return bool(mode & WRITE_BITS)


def mode_is_executable(mode: int) -> bool:
    return bool(mode & EXECUTE_BITS)
