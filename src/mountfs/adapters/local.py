"""LocalAdapter — direct access to a directory on the local disk."""

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from ..adapter import Adapter, Capability
from ..config import BASEPATH, DEFAULT_BASEPATH, AdapterConfig
from ..exceptions import AdapterError, PathNotFoundError
from ..types import NodeType, StatRecord, datetime_to_timestamp, timestamp_to_datetime
from ..utils import SNIFF_BYTES

if TYPE_CHECKING:
    from datetime import datetime

    from ..pathname import Pathname

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalRoot:
    """A "connection" to the local disk: the verified, resolved base directory."""

    host_dir: Path


class LocalAdapter(Adapter[LocalRoot]):
    """Pure local disk adapter.  Supports every optional capability.

    The configured ``BASEPATH`` is the host directory exposed as "/".  It is
    resolved and checked on first use and again after it changes.

    Security: :meth:`_resolve` keeps every path inside the host directory,
    so neither ``..`` segments nor symlinks can escape it.
    """

    capabilities = frozenset(Capability)

    def __init__(
        self,
        basepath: Path | str | None = None,
        *,
        config: AdapterConfig | None = None,
    ) -> None:
        config = config if config is not None else AdapterConfig()
        if basepath is not None:
            config.set(BASEPATH, str(basepath))
        super().__init__(config)

    def describe(self) -> str:
        return f"file://{self.config.get(BASEPATH, DEFAULT_BASEPATH)}"

    # =========================================================================
    # Connection
    # =========================================================================

    def _host_dir_setting(self) -> Path:
        return Path(self.config.get(BASEPATH, DEFAULT_BASEPATH)).expanduser()

    def connection_identity(self) -> str:
        return hashlib.sha256(str(self._host_dir_setting()).encode("utf-8")).hexdigest()

    def _open_connection(self) -> LocalRoot:
        host_dir = self._host_dir_setting().resolve()
        if not host_dir.exists():
            raise AdapterError(f"Host directory does not exist: {host_dir}", operation="connect")
        if not host_dir.is_dir():
            raise AdapterError(f"Host path is not a directory: {host_dir}", operation="connect")
        return LocalRoot(host_dir=host_dir)

    def _close_connection(self, connection: LocalRoot) -> None:
        pass

    # =========================================================================
    # Path Resolution & Security
    # =========================================================================

    def _resolve(self, root: LocalRoot, pathname: Pathname, *, follow: bool = True) -> Path:
        """Map an adapter-local path to a physical path under the host dir.

        With ``follow=False`` the last component is left unresolved so the
        caller can inspect a symlink itself.
        """
        rel = pathname.local.lstrip("/")
        if not rel:
            return root.host_dir

        candidate = root.host_dir / rel
        if follow:
            resolved = candidate.resolve()
        else:
            resolved = candidate.parent.resolve() / candidate.name

        try:
            resolved.relative_to(root.host_dir)
        except ValueError:
            raise PathNotFoundError(
                f"Path resolves outside the adapter root: {pathname.full}",
                path=pathname.full,
            ) from None

        return resolved

    # =========================================================================
    # Primitives
    # =========================================================================

    def _stat(self, conn: LocalRoot, pathname: Pathname, *, follow: bool = True) -> StatRecord | None:
        try:
            path = self._resolve(conn, pathname, follow=follow)
            st = path.stat() if follow else path.lstat()
        except (FileNotFoundError, NotADirectoryError, PathNotFoundError):
            return None
        record = StatRecord.from_stat_result(st)
        if record.ctime is None:
            # No birth time on this platform; inode change time is the closest record
            record = StatRecord(
                type=record.type,
                size=record.size,
                atime=record.atime,
                mtime=record.mtime,
                uid=record.uid,
                gid=record.gid,
                permissions=record.permissions,
                ctime=timestamp_to_datetime(st.st_ctime),
            )
        return record

    def _list(self, conn: LocalRoot, pathname: Pathname) -> list[str]:
        return os.listdir(self._resolve(conn, pathname))

    def _read(self, conn: LocalRoot, pathname: Pathname) -> bytes:
        return self._resolve(conn, pathname).read_bytes()

    def _write(self, conn: LocalRoot, pathname: Pathname, data: bytes) -> None:
        """Atomic via tempfile + replace for existing files."""
        resolved = self._resolve(conn, pathname)
        if not resolved.exists():
            resolved.write_bytes(data)
            return
        fd, tmp_path = tempfile.mkstemp(dir=str(resolved.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            shutil.copymode(resolved, tmp_path)
            Path(tmp_path).replace(resolved)
        except BaseException:
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise

    def _mkdir(self, conn: LocalRoot, pathname: Pathname) -> None:
        self._resolve(conn, pathname).mkdir()

    def _remove_file(self, conn: LocalRoot, pathname: Pathname) -> None:
        self._resolve(conn, pathname, follow=False).unlink()

    def _remove_dir(self, conn: LocalRoot, pathname: Pathname) -> None:
        self._resolve(conn, pathname, follow=False).rmdir()

    def _rename(self, conn: LocalRoot, src: Pathname, dst: Pathname) -> bool:
        src_path = self._resolve(conn, src, follow=False)
        dst_path = self._resolve(conn, dst, follow=False)
        try:
            src_path.rename(dst_path)
        except OSError as e:
            # EXDEV and friends: let the caller copy instead
            logger.debug("rename %s -> %s failed: %s", src_path, dst_path, e)
            return False
        return True

    # =========================================================================
    # Optional primitives
    # =========================================================================

    def _set_times(
        self, conn: LocalRoot, pathname: Pathname, atime: datetime | None, mtime: datetime | None
    ) -> None:
        path = self._resolve(conn, pathname)
        st = path.stat()
        os.utime(
            path,
            (
                datetime_to_timestamp(atime) if atime is not None else st.st_atime,
                datetime_to_timestamp(mtime) if mtime is not None else st.st_mtime,
            ),
        )

    def _chown(self, conn: LocalRoot, pathname: Pathname, uid: int | None, gid: int | None) -> None:
        os.chown(self._resolve(conn, pathname), -1 if uid is None else uid, -1 if gid is None else gid)

    def _chmod(self, conn: LocalRoot, pathname: Pathname, mode: int) -> None:
        self._resolve(conn, pathname).chmod(mode)

    def _append(self, conn: LocalRoot, pathname: Pathname, data: bytes) -> None:
        with self._resolve(conn, pathname).open("ab") as f:
            f.write(data)

    def _truncate(self, conn: LocalRoot, pathname: Pathname, size: int) -> None:
        os.truncate(self._resolve(conn, pathname), size)

    def _stream_url(self, conn: LocalRoot, pathname: Pathname) -> str:
        return self._resolve(conn, pathname).as_uri()

    def _disk_usage(self, conn: LocalRoot, pathname: Pathname) -> tuple[int, int]:
        usage = shutil.disk_usage(self._resolve(conn, pathname))
        return usage.total, usage.free

    def _sniff(self, conn: LocalRoot, pathname: Pathname) -> bytes:
        with self._resolve(conn, pathname).open("rb") as f:
            return f.read(SNIFF_BYTES)

    def _open_stream(self, conn: LocalRoot, pathname: Pathname) -> BinaryIO | None:
        return self._resolve(conn, pathname).open("r+b")

    # =========================================================================
    # Recursive delete
    # =========================================================================

    def _delete_node(self, conn: LocalRoot, pathname: Pathname, st: StatRecord, recursive: bool) -> None:
        if recursive and st.type is NodeType.DIRECTORY:
            shutil.rmtree(self._resolve(conn, pathname, follow=False))
            return
        super()._delete_node(conn, pathname, st, recursive)
