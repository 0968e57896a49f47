"""Tests for Pathname, StatRecord, permissions and the error taxonomy."""

from __future__ import annotations

import os
import stat
from datetime import UTC, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from mountfs.exceptions import (
    AdapterError,
    AlreadyExistsError,
    DirectoryNotEmptyError,
    ErrorKind,
    MountFSError,
    MountNotFoundError,
    PathNotFoundError,
    UnsupportedOperationError,
)
from mountfs.pathname import Pathname
from mountfs.permissions import mode_is_executable, mode_is_readable, mode_is_writable
from mountfs.types import NodeType, StatRecord, datetime_to_timestamp, timestamp_to_datetime


class FakeAdapter:
    pass


# ---------------------------------------------------------------------------
# Pathname
# ---------------------------------------------------------------------------


class TestPathname:
    def test_normalizes(self):
        p = Pathname(full="/mnt/a/../b/", local="a/../b", adapter=FakeAdapter())
        assert p.full == "/mnt/b"
        assert p.local == "/b"

    def test_equality_needs_same_adapter(self):
        a, b = FakeAdapter(), FakeAdapter()
        assert Pathname("/x", "/x", a) == Pathname("/x", "/x", a)
        assert Pathname("/x", "/x", a) != Pathname("/x", "/x", b)
        assert len({Pathname("/x", "/x", a), Pathname("/x", "/x", a)}) == 1

    def test_child_and_parent(self):
        adapter = FakeAdapter()
        p = Pathname("/mnt", "/", adapter)
        child = p.child("docs").child("a.txt")
        assert child.full == "/mnt/docs/a.txt"
        assert child.local == "/docs/a.txt"
        assert child.name == "a.txt"
        assert child.parent().local == "/docs"
        assert child.parent().adapter is adapter

    def test_parent_clamped_at_root(self):
        p = Pathname("/mnt", "/", FakeAdapter())
        assert p.is_root
        assert p.parent() is p

    def test_immutable(self):
        p = Pathname("/x", "/x", FakeAdapter())
        with pytest.raises(AttributeError):
            p.full = "/y"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# StatRecord
# ---------------------------------------------------------------------------


class TestStatRecord:
    def test_from_os_stat(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes(b"12345")
        record = StatRecord.from_stat_result(os.stat(f))
        assert record.type is NodeType.FILE
        assert record.size == 5
        assert record.mtime is not None
        assert record.mtime.tzinfo is UTC

    def test_from_sftp_like_attributes(self):
        attrs = SimpleNamespace(
            st_mode=stat.S_IFDIR | 0o750,
            st_size=4096,
            st_atime=0,
            st_mtime=60,
            st_uid=1,
            st_gid=2,
        )
        record = StatRecord.from_stat_result(attrs)
        assert record.type is NodeType.DIRECTORY
        assert record.permissions == 0o750
        assert record.mtime == datetime(1970, 1, 1, 0, 1, tzinfo=UTC)
        assert record.ctime is None

    def test_missing_fields(self):
        record = StatRecord.from_stat_result(SimpleNamespace())
        assert record.type is NodeType.OTHER
        assert record.size == 0
        assert record.atime is None
        assert record.uid is None

    def test_node_type_from_mode(self):
        assert NodeType.from_mode(stat.S_IFLNK | 0o777) is NodeType.SYMLINK
        assert NodeType.from_mode(stat.S_IFREG) is NodeType.FILE
        assert NodeType.from_mode(stat.S_IFIFO) is NodeType.OTHER
        assert NodeType.from_mode(None) is NodeType.OTHER

    def test_timestamps(self):
        assert timestamp_to_datetime(None) is None
        naive = datetime(2000, 1, 1)
        assert datetime_to_timestamp(naive) == datetime(2000, 1, 1, tzinfo=UTC).timestamp()
        plus_two = datetime(2000, 1, 1, 2, tzinfo=timezone(timedelta(hours=2)))
        assert datetime_to_timestamp(plus_two) == datetime_to_timestamp(naive)


# ---------------------------------------------------------------------------
# Permission bits
# ---------------------------------------------------------------------------


class TestModeBits:
    @pytest.mark.parametrize(
        ("mode", "readable", "writable", "executable"),
        [
            (0o644, True, True, False),
            (0o755, True, True, True),
            (0o400, True, False, False),
            (0o004, True, False, False),
            (0o001, False, False, True),
            (0o000, False, False, False),
        ],
    )
    def test_any_class_grants(self, mode, readable, writable, executable):
        assert mode_is_readable(mode) is readable
        assert mode_is_writable(mode) is writable
        assert mode_is_executable(mode) is executable


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("cls", "kind"),
        [
            (PathNotFoundError, ErrorKind.NOT_FOUND),
            (MountNotFoundError, ErrorKind.NOT_FOUND),
            (AlreadyExistsError, ErrorKind.ALREADY_EXISTS),
            (DirectoryNotEmptyError, ErrorKind.ALREADY_EXISTS),
            (UnsupportedOperationError, ErrorKind.UNSUPPORTED),
            (AdapterError, ErrorKind.ADAPTER),
        ],
    )
    def test_kind(self, cls, kind):
        err = cls("boom", path="/p", operation="op")
        assert isinstance(err, MountFSError)
        assert err.kind is kind
        assert err.path == "/p"
        assert err.operation == "op"
        assert str(err) == "boom"
