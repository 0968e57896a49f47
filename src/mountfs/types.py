"""Result types: StatRecord, MoveResult."""

from __future__ import annotations

import stat as stat_module
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class NodeType(str, Enum):
    """Kind of node a stat call reports."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int | None) -> NodeType:
        """Classify a raw ``st_mode`` value."""
        if mode is None:
            return cls.OTHER
        if stat_module.S_ISLNK(mode):
            return cls.SYMLINK
        if stat_module.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat_module.S_ISREG(mode):
            return cls.FILE
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class StatRecord:
    """Fixed-shape metadata for a single node.

    Attributes:
        type: Node kind.
        size: Size in bytes (0 for directories).
        atime: Last access time (UTC).
        mtime: Last modification time (UTC).
        uid: Numeric owner id.
        gid: Numeric group id.
        permissions: Permission bits (``0o7777`` range, POSIX layout).
        ctime: Creation time where the backend knows it, else ``None``.
    """

    type: NodeType
    size: int
    atime: datetime | None
    mtime: datetime | None
    uid: int | None
    gid: int | None
    permissions: int
    ctime: datetime | None = None

    @classmethod
    def from_stat_result(cls, st: object) -> StatRecord:
        """Build a record from anything shaped like ``os.stat_result``.

        ``paramiko.SFTPAttributes`` uses the same attribute names, with
        missing fields reported as ``None``.
        """
        mode = getattr(st, "st_mode", None)
        birth = getattr(st, "st_birthtime", None)
        return cls(
            type=NodeType.from_mode(mode),
            size=getattr(st, "st_size", None) or 0,
            atime=timestamp_to_datetime(getattr(st, "st_atime", None)),
            mtime=timestamp_to_datetime(getattr(st, "st_mtime", None)),
            uid=getattr(st, "st_uid", None),
            gid=getattr(st, "st_gid", None),
            permissions=stat_module.S_IMODE(mode) if mode is not None else 0,
            ctime=timestamp_to_datetime(birth),
        )


@dataclass
class MoveResult:
    """Result of a router-level move."""

    success: bool
    message: str
    old_path: str | None = None
    new_path: str | None = None
    native: bool = False


def timestamp_to_datetime(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


def datetime_to_timestamp(value: datetime) -> float:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()
