"""Shared fixtures for mountfs tests."""

from __future__ import annotations

import errno
import os
import posixpath
import shutil
from typing import TYPE_CHECKING, Any

import pytest

from mountfs.adapters import DatabaseAdapter, LocalAdapter, SFTPAdapter
from mountfs.exceptions import AdapterError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from mountfs.adapters.sftp import SFTPSettings


# ---------------------------------------------------------------------------
# Fake SFTP server
# ---------------------------------------------------------------------------


class FakeSFTPClient:
    """Stand-in for ``paramiko.SFTPClient`` serving a local directory.

    The server's "/" is *root* on the local disk.  Paths follow SFTP rules:
    relative paths resolve against the current directory set by ``chdir``.
    """

    def __init__(self, server: FakeSFTPServer, home: str) -> None:
        self.server = server
        self.cwd = home
        self.closed = False

    def _abs(self, path: str) -> str:
        return posixpath.normpath(posixpath.join(self.cwd, path))

    def _local(self, path: str) -> Path:
        self._check()
        return self.server.root / self._abs(path).lstrip("/")

    def _check(self) -> None:
        if self.closed:
            raise OSError("Socket is closed")
        if self.server.broken:
            raise EOFError("connection reset by peer")

    def chdir(self, path: str) -> None:
        if not self._local(path).is_dir():
            raise FileNotFoundError(errno.ENOENT, "No such file", path)
        self.cwd = self._abs(path)

    def normalize(self, path: str) -> str:
        self._check()
        return self._abs(path)

    def stat(self, path: str) -> os.stat_result:
        return os.stat(self._local(path))

    def lstat(self, path: str) -> os.stat_result:
        return os.lstat(self._local(path))

    def listdir(self, path: str = ".") -> list[str]:
        return os.listdir(self._local(path))

    def getfo(self, path: str, fl: Any) -> int:
        with open(self._local(path), "rb") as f:
            data = f.read()
        fl.write(data)
        return len(data)

    def putfo(self, fl: Any, path: str) -> None:
        with open(self._local(path), "wb") as f:
            shutil.copyfileobj(fl, f)

    def open(self, path: str, mode: str = "r") -> Any:
        return open(self._local(path), mode)  # noqa: SIM115

    def mkdir(self, path: str, mode: int = 0o777) -> None:
        os.mkdir(self._local(path), mode)

    def rmdir(self, path: str) -> None:
        os.rmdir(self._local(path))

    def remove(self, path: str) -> None:
        os.remove(self._local(path))

    def rename(self, oldpath: str, newpath: str) -> None:
        # Plain SFTP rename refuses to overwrite
        if self._local(newpath).exists():
            raise OSError("Failure")
        os.rename(self._local(oldpath), self._local(newpath))

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(self._local(path), mode)

    def chown(self, path: str, uid: int, gid: int) -> None:
        self._local(path)
        self.server.chowns.append((self._abs(path), uid, gid))

    def truncate(self, path: str, size: int) -> None:
        os.truncate(self._local(path), size)

    def close(self) -> None:
        self.closed = True


class FakeSFTPServer:
    """Accepts logins for known users and hands out :class:`FakeSFTPClient` sessions."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.users = {"alice": "secret"}
        self.clients: list[FakeSFTPClient] = []
        self.logins: list[SFTPSettings] = []
        self.chowns: list[tuple[str, int, int]] = []
        self.broken = False
        self.refuse = False
        for user in self.users:
            (root / "home" / user).mkdir(parents=True)

    def login(self, settings: SFTPSettings) -> FakeSFTPClient:
        if self.refuse:
            raise ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
        if self.users.get(settings.username or "") != settings.password:
            raise AdapterError(f"Could not login to {settings.host}", operation="connect")
        self.logins.append(settings)
        client = FakeSFTPClient(self, f"/home/{settings.username}")
        self.clients.append(client)
        return client


class FakeSFTPAdapter(SFTPAdapter):
    """SFTPAdapter whose sessions come from a :class:`FakeSFTPServer`."""

    server: FakeSFTPServer

    def _open_client(self, settings: SFTPSettings) -> tuple[Any, Any]:
        return self.server.login(settings), None


def make_sftp_adapter(server: FakeSFTPServer, **kwargs: Any) -> FakeSFTPAdapter:
    kwargs.setdefault("host", "sftp.example.org")
    kwargs.setdefault("username", "alice")
    kwargs.setdefault("password", "secret")
    adapter = FakeSFTPAdapter(**kwargs)
    adapter.server = server
    return adapter


# ---------------------------------------------------------------------------
# Adapter fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def local_root(tmp_path: Path) -> Path:
    root = tmp_path / "local"
    root.mkdir()
    return root


@pytest.fixture
def local_adapter(local_root: Path) -> Iterator[LocalAdapter]:
    adapter = LocalAdapter(local_root)
    yield adapter
    adapter.close()


@pytest.fixture
def sftp_server(tmp_path: Path) -> FakeSFTPServer:
    root = tmp_path / "sftp"
    root.mkdir()
    return FakeSFTPServer(root)


@pytest.fixture
def sftp_adapter(sftp_server: FakeSFTPServer) -> Iterator[FakeSFTPAdapter]:
    adapter = make_sftp_adapter(sftp_server)
    yield adapter
    adapter.close()


@pytest.fixture
def db_adapter(tmp_path: Path) -> Iterator[DatabaseAdapter]:
    adapter = DatabaseAdapter(f"sqlite:///{tmp_path / 'fs.db'}")
    yield adapter
    adapter.close()


@pytest.fixture(params=["local_adapter", "sftp_adapter", "db_adapter"])
def adapter(request: pytest.FixtureRequest) -> Any:
    """Every concrete adapter, for behavior all backends must share."""
    return request.getfixturevalue(request.param)
