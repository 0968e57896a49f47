"""Tests for LocalAdapter."""

from __future__ import annotations

import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

from mountfs.adapters import LocalAdapter
from mountfs.config import BASEPATH
from mountfs.connection import ConnectionState
from mountfs.exceptions import AdapterError, PathNotFoundError

# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class TestLocalConnection:
    def test_connects_lazily(self, local_adapter):
        assert local_adapter.state is ConnectionState.DISCONNECTED
        local_adapter.exists(local_adapter.pathname("/"))
        assert local_adapter.state is ConnectionState.CONNECTED

    def test_missing_host_dir(self, tmp_path):
        adapter = LocalAdapter(tmp_path / "does-not-exist")
        with pytest.raises(AdapterError) as exc_info:
            adapter.exists(adapter.pathname("/a"))
        assert exc_info.value.operation == "connect"
        assert adapter.state is ConnectionState.DISCONNECTED

    def test_host_dir_is_a_file(self, tmp_path):
        f = tmp_path / "plain"
        f.write_text("x")
        adapter = LocalAdapter(f)
        with pytest.raises(AdapterError):
            adapter.ls(adapter.pathname("/"))

    def test_changing_basepath_switches_root(self, tmp_path):
        one = tmp_path / "one"
        two = tmp_path / "two"
        one.mkdir()
        two.mkdir()
        (one / "a.txt").write_text("from one")
        (two / "b.txt").write_text("from two")

        adapter = LocalAdapter(one)
        assert adapter.ls(adapter.pathname("/")) == ["a.txt"]
        adapter.config.set(BASEPATH, str(two))
        assert adapter.state is ConnectionState.DISCONNECTED
        assert adapter.ls(adapter.pathname("/")) == ["b.txt"]
        assert adapter.connection_manager.connect_count == 2

    def test_describe(self, local_root):
        assert LocalAdapter(local_root).describe() == f"file://{local_root}"


# ---------------------------------------------------------------------------
# Path containment
# ---------------------------------------------------------------------------


class TestContainment:
    def test_dotdot_is_clamped_to_root(self, local_adapter, local_root):
        (local_root.parent / "outside.txt").write_text("secret")
        p = local_adapter.pathname("/../outside.txt")
        assert p.local == "/outside.txt"
        assert local_adapter.exists(p) is False

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_escape_is_not_found(self, local_adapter, local_root):
        outside = local_root.parent / "outside.txt"
        outside.write_text("secret")
        (local_root / "link").symlink_to(outside)
        with pytest.raises(PathNotFoundError):
            local_adapter.get_contents(local_adapter.pathname("/link"))

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_inside_root(self, local_adapter, local_root):
        (local_root / "target.txt").write_text("hi")
        (local_root / "link").symlink_to(local_root / "target.txt")
        p = local_adapter.pathname("/link")
        assert local_adapter.is_link(p)
        assert local_adapter.is_file(p)
        assert local_adapter.get_contents(p) == b"hi"

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_delete_link_keeps_target(self, local_adapter, local_root):
        (local_root / "target.txt").write_text("hi")
        (local_root / "link").symlink_to(local_root / "target.txt")
        local_adapter.delete(local_adapter.pathname("/link"))
        assert (local_root / "target.txt").exists()
        assert not (local_root / "link").exists()


# ---------------------------------------------------------------------------
# Disk behavior
# ---------------------------------------------------------------------------


class TestLocalFiles:
    def test_writes_land_on_disk(self, local_adapter, local_root):
        local_adapter.set_contents(local_adapter.pathname("/a.txt"), b"disk")
        assert (local_root / "a.txt").read_bytes() == b"disk"

    def test_overwrite_keeps_mode(self, local_adapter, local_root):
        p = local_adapter.pathname("/run.sh")
        local_adapter.set_contents(p, b"#!/bin/sh\n")
        local_adapter.set_mode(p, 0o750)
        local_adapter.set_contents(p, b"#!/bin/sh\necho hi\n")
        assert local_adapter.get_mode(p) == 0o750

    def test_overwrite_leaves_no_temp_files(self, local_adapter, local_root):
        p = local_adapter.pathname("/a.txt")
        local_adapter.set_contents(p, b"1")
        local_adapter.set_contents(p, b"2")
        assert sorted(os.listdir(local_root)) == ["a.txt"]

    def test_truncate_grows_with_zeros(self, local_adapter):
        p = local_adapter.pathname("/a.txt")
        local_adapter.set_contents(p, b"ab")
        local_adapter.truncate(p, 4)
        assert local_adapter.get_contents(p) == b"ab\x00\x00"


# ---------------------------------------------------------------------------
# Optional capabilities
# ---------------------------------------------------------------------------


class TestLocalCapabilities:
    def test_set_times(self, local_adapter):
        p = local_adapter.pathname("/a.txt")
        local_adapter.create_file(p)
        when = datetime(2020, 1, 2, 3, 4, 5, tzinfo=UTC)
        local_adapter.set_modify_time(p, when)
        local_adapter.set_access_time(p, when)
        assert local_adapter.get_modify_time(p) == when
        assert local_adapter.get_access_time(p) == when

    def test_touch_creates_file(self, local_adapter):
        p = local_adapter.pathname("/new.txt")
        when = datetime(2021, 6, 1, tzinfo=UTC)
        local_adapter.touch(p, when)
        assert local_adapter.get_modify_time(p) == when
        assert local_adapter.get_access_time(p) == when
        assert local_adapter.get_size(p) == 0

    def test_touch_without_create(self, local_adapter):
        p = local_adapter.pathname("/new.txt")
        with pytest.raises(PathNotFoundError):
            local_adapter.touch(p, create=False)
        assert not local_adapter.exists(p)

    def test_touch_keeps_content(self, local_adapter):
        p = local_adapter.pathname("/a.txt")
        local_adapter.set_contents(p, b"keep")
        local_adapter.touch(p)
        assert local_adapter.get_contents(p) == b"keep"

    def test_creation_time_is_available(self, local_adapter):
        p = local_adapter.pathname("/a.txt")
        local_adapter.create_file(p)
        assert local_adapter.get_creation_time(p) is not None

    @pytest.mark.skipif(not hasattr(os, "getuid"), reason="POSIX ownership only")
    def test_owner_and_group(self, local_adapter):
        p = local_adapter.pathname("/a.txt")
        local_adapter.create_file(p)
        assert local_adapter.get_owner(p) == os.getuid()
        local_adapter.set_owner(p, os.getuid())
        local_adapter.set_group(p, os.getgid())
        assert local_adapter.get_group(p) == os.getgid()

    def test_stream_url(self, local_adapter, local_root):
        p = local_adapter.pathname("/a.txt")
        local_adapter.create_file(p)
        url = local_adapter.get_stream_url(p)
        assert url.startswith("file://")
        assert url == (local_root / "a.txt").resolve().as_uri()

    def test_disk_space(self, local_adapter):
        root = local_adapter.pathname("/")
        total = local_adapter.get_total_space(root)
        free = local_adapter.get_free_space(root)
        assert total > 0
        assert 0 <= free <= total

    def test_mime_text(self, local_adapter):
        p = local_adapter.pathname("/notes.txt")
        local_adapter.set_contents(p, b"plain words")
        assert local_adapter.get_mime_type(p) == "text/plain"
        assert local_adapter.get_mime_encoding(p) == "us-ascii"
        assert local_adapter.get_mime_name(p) == "text/plain; charset=us-ascii"

    def test_mime_binary_without_extension(self, local_adapter):
        p = local_adapter.pathname("/blob")
        local_adapter.set_contents(p, b"\x00\x01\x02\x03")
        assert local_adapter.get_mime_type(p) == "application/octet-stream"
        assert local_adapter.get_mime_encoding(p) == "binary"

    def test_mime_utf8(self, local_adapter):
        p = local_adapter.pathname("/readme")
        local_adapter.set_contents(p, "größe".encode())
        assert local_adapter.get_mime_encoding(p) == "utf-8"

    def test_mime_directory(self, local_adapter):
        p = local_adapter.pathname("/d")
        local_adapter.create_directory(p)
        assert local_adapter.get_mime_type(p) == "inode/directory"

    def test_native_stream_is_real_file(self, local_adapter, local_root):
        p = local_adapter.pathname("/a.txt")
        local_adapter.set_contents(p, b"abc")
        with local_adapter.get_stream(p) as stream:
            assert Path(stream.name).resolve() == (local_root / "a.txt").resolve()
