"""Adapter — the operation contract every storage backend implements.

Backends subclass :class:`Adapter` and provide a handful of primitives
(``_stat``, ``_list``, ``_read``, ``_write``, ``_mkdir``, ``_remove_file``,
``_remove_dir``, ``_rename``) plus the connection hooks.  The public
operations here build the uniform semantics on top of those primitives:
existence checks, wrong-type conflicts, parent creation, recursive size and
delete, listing order, and capability gating.

Optional operations are gated by :attr:`Adapter.capabilities`.  Calling one a
backend does not declare raises :class:`UnsupportedOperationError`; it is
never turned into a silent no-op.
"""

from __future__ import annotations

import abc
import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO, ClassVar, Generic, TypeVar

from .config import AdapterConfig
from .connection import ConnectionManager, ConnectionState
from .exceptions import (
    AdapterError,
    AlreadyExistsError,
    DirectoryNotEmptyError,
    MountFSError,
    PathNotFoundError,
    UnsupportedOperationError,
)
from .pathname import Pathname
from .permissions import mode_is_executable, mode_is_readable, mode_is_writable
from .streams import TemporaryStream
from .types import NodeType, StatRecord
from .utils import (
    SNIFF_BYTES,
    detect_encoding,
    guess_mime_type,
    is_within,
    mime_name,
    sort_names,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

C = TypeVar("C")


class Capability(str, Enum):
    """Optional operations a backend may or may not support."""

    SET_ACCESS_TIME = "set_access_time"
    SET_MODIFY_TIME = "set_modify_time"
    TOUCH = "touch"
    CREATION_TIME = "get_creation_time"
    SET_OWNER = "set_owner"
    SET_GROUP = "set_group"
    SET_MODE = "set_mode"
    APPEND = "append_contents"
    TRUNCATE = "truncate"
    STREAM_URL = "get_stream_url"
    MIME = "mime"
    FREE_SPACE = "get_free_space"
    TOTAL_SPACE = "get_total_space"


class Adapter(abc.ABC, Generic[C]):
    """Base class for all storage backends.

    Subclasses declare :attr:`capabilities`, implement the abstract
    primitives, and describe their connection through
    :meth:`_open_connection`, :meth:`_close_connection` and
    :meth:`connection_identity`.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def __init__(self, config: AdapterConfig | None = None) -> None:
        self.config = config if config is not None else AdapterConfig()
        self._manager: ConnectionManager[C] = ConnectionManager(
            self._open_connection,
            self._close_connection,
            name=self.describe,
        )
        self.config.register(self._on_config_change)
        self.notify_config_change()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()})"

    def __enter__(self) -> Adapter[C]:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def describe(self) -> str:
        """Short, secret-free label for logs."""
        return type(self).__name__

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    @abc.abstractmethod
    def _open_connection(self) -> C:
        """Open a new backend connection from the current config."""

    @abc.abstractmethod
    def _close_connection(self, connection: C) -> None:
        """Close a connection previously returned by ``_open_connection``."""

    @abc.abstractmethod
    def connection_identity(self) -> str:
        """Opaque digest of every config field that shapes the connection."""

    @property
    def connection_manager(self) -> ConnectionManager[C]:
        return self._manager

    @property
    def state(self) -> ConnectionState:
        return self._manager.state

    def notify_config_change(self) -> None:
        """Recompute the identity; drops the connection if it changed."""
        if self._manager.notify(self.connection_identity()):
            logger.info("Connection of %s invalidated by configuration change", self.describe())

    def _on_config_change(self, config: AdapterConfig) -> None:
        self.notify_config_change()

    def close(self) -> None:
        """Disconnect.  The adapter stays usable and reconnects on demand."""
        self._manager.close()

    def pathname(self, path: str) -> Pathname:
        """Pathname for *path* on this adapter when it is used unmounted."""
        return Pathname(full=path, local=path, adapter=self)

    @contextmanager
    def _dispatch(self, operation: str, pathname: Pathname | None = None) -> Iterator[C]:
        """Run one operation against the live connection.

        Backend-native exceptions are translated into the mountfs taxonomy
        with the operation name and path attached.
        """
        path = pathname.full if pathname is not None else None
        try:
            with self._manager.connection() as connection:
                yield connection
        except MountFSError as e:
            if e.path is None:
                e.path = path
            if e.operation is None:
                e.operation = operation
            raise
        except Exception as e:
            raise self._translate_error(e, operation, path) from e

    def _translate_error(self, exc: Exception, operation: str, path: str | None) -> MountFSError:
        message = f"{operation} failed for {path}: {exc}"
        if isinstance(exc, FileNotFoundError):
            return PathNotFoundError(message, path=path, operation=operation)
        if isinstance(exc, (FileExistsError, IsADirectoryError, NotADirectoryError)):
            return AlreadyExistsError(message, path=path, operation=operation)
        return AdapterError(message, path=path, operation=operation)

    # =========================================================================
    # Primitives
    # =========================================================================

    @abc.abstractmethod
    def _stat(self, conn: C, pathname: Pathname, *, follow: bool = True) -> StatRecord | None:
        """Stat a node; ``None`` when it does not exist."""

    @abc.abstractmethod
    def _list(self, conn: C, pathname: Pathname) -> list[str]:
        """Raw child names of a directory, in any order."""

    @abc.abstractmethod
    def _read(self, conn: C, pathname: Pathname) -> bytes: ...

    @abc.abstractmethod
    def _write(self, conn: C, pathname: Pathname, data: bytes) -> None:
        """Create or replace a regular file with *data*."""

    @abc.abstractmethod
    def _mkdir(self, conn: C, pathname: Pathname) -> None:
        """Create one directory whose parent exists."""

    @abc.abstractmethod
    def _remove_file(self, conn: C, pathname: Pathname) -> None: ...

    @abc.abstractmethod
    def _remove_dir(self, conn: C, pathname: Pathname) -> None:
        """Remove one empty directory."""

    @abc.abstractmethod
    def _rename(self, conn: C, src: Pathname, dst: Pathname) -> bool:
        """Rename within this backend; False when the backend refuses."""

    # Optional primitives, reachable only through declared capabilities

    def _set_times(
        self, conn: C, pathname: Pathname, atime: datetime | None, mtime: datetime | None
    ) -> None:
        raise self._not_implemented("set_times", pathname)

    def _chown(self, conn: C, pathname: Pathname, uid: int | None, gid: int | None) -> None:
        raise self._not_implemented("chown", pathname)

    def _chmod(self, conn: C, pathname: Pathname, mode: int) -> None:
        raise self._not_implemented("chmod", pathname)

    def _append(self, conn: C, pathname: Pathname, data: bytes) -> None:
        raise self._not_implemented("append", pathname)

    def _truncate(self, conn: C, pathname: Pathname, size: int) -> None:
        raise self._not_implemented("truncate", pathname)

    def _stream_url(self, conn: C, pathname: Pathname) -> str:
        raise self._not_implemented("stream_url", pathname)

    def _disk_usage(self, conn: C, pathname: Pathname) -> tuple[int, int]:
        """Return ``(total, free)`` bytes."""
        raise self._not_implemented("disk_usage", pathname)

    def _sniff(self, conn: C, pathname: Pathname) -> bytes:
        """Leading bytes of a file for MIME detection."""
        return self._read(conn, pathname)[:SNIFF_BYTES]

    def _open_stream(self, conn: C, pathname: Pathname) -> BinaryIO | None:
        """Native read/write stream, or None to use a temporary local copy."""
        return None

    def _fill_stream(self, conn: C, pathname: Pathname, fileobj: BinaryIO) -> None:
        fileobj.write(self._read(conn, pathname))

    def _drain_stream(self, conn: C, pathname: Pathname, fileobj: BinaryIO) -> None:
        self._write(conn, pathname, fileobj.read())

    # =========================================================================
    # Helpers
    # =========================================================================

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _require(self, capability: Capability, pathname: Pathname | None = None) -> None:
        if capability not in self.capabilities:
            raise UnsupportedOperationError(
                f"{type(self).__name__} does not support {capability.value}",
                path=pathname.full if pathname is not None else None,
                operation=capability.value,
            )

    def _not_implemented(self, primitive: str, pathname: Pathname) -> UnsupportedOperationError:
        """Error for a declared capability whose primitive was never overridden."""
        return UnsupportedOperationError(
            f"{type(self).__name__} does not implement {primitive}",
            path=pathname.full,
            operation=primitive,
        )

    def _require_stat(
        self, conn: C, pathname: Pathname, operation: str, *, follow: bool = True
    ) -> StatRecord:
        st = self._stat(conn, pathname, follow=follow)
        if st is None:
            raise PathNotFoundError(
                f"No such file or directory: {pathname.full}",
                path=pathname.full,
                operation=operation,
            )
        return st

    def _require_file(self, conn: C, pathname: Pathname, operation: str) -> StatRecord:
        st = self._require_stat(conn, pathname, operation)
        if st.type is NodeType.DIRECTORY:
            raise AlreadyExistsError(
                f"Path is a directory, not a file: {pathname.full}",
                path=pathname.full,
                operation=operation,
            )
        return st

    def _require_parent(self, conn: C, pathname: Pathname, operation: str, parents: bool) -> None:
        """Make sure the parent directory exists, creating it if *parents*."""
        if pathname.is_root:
            return
        parent = pathname.parent()
        st = self._stat(conn, parent)
        if st is None:
            if not parents:
                raise PathNotFoundError(
                    f"Parent directory does not exist: {parent.full}",
                    path=pathname.full,
                    operation=operation,
                )
            self._create_directory(conn, parent, parents=True)
        elif st.type is not NodeType.DIRECTORY:
            raise AlreadyExistsError(
                f"Parent path exists and is not a directory: {parent.full}",
                path=pathname.full,
                operation=operation,
            )

    def _children(self, conn: C, pathname: Pathname) -> list[str]:
        return sort_names(self._list(conn, pathname))

    @staticmethod
    def _to_bytes(content: bytes | str) -> bytes:
        return content.encode("utf-8") if isinstance(content, str) else bytes(content)

    # =========================================================================
    # Type queries
    # =========================================================================

    def stat(self, pathname: Pathname, *, follow: bool = True) -> StatRecord:
        """Fresh metadata record; raises PathNotFoundError when absent."""
        with self._dispatch("stat", pathname) as conn:
            return self._require_stat(conn, pathname, "stat", follow=follow)

    def exists(self, pathname: Pathname) -> bool:
        with self._dispatch("exists", pathname) as conn:
            return self._stat(conn, pathname, follow=False) is not None

    def is_file(self, pathname: Pathname) -> bool:
        with self._dispatch("is_file", pathname) as conn:
            st = self._stat(conn, pathname)
        return st is not None and st.type is NodeType.FILE

    def is_directory(self, pathname: Pathname) -> bool:
        with self._dispatch("is_directory", pathname) as conn:
            st = self._stat(conn, pathname)
        return st is not None and st.type is NodeType.DIRECTORY

    def is_link(self, pathname: Pathname) -> bool:
        with self._dispatch("is_link", pathname) as conn:
            st = self._stat(conn, pathname, follow=False)
        return st is not None and st.type is NodeType.SYMLINK

    # =========================================================================
    # Metadata
    # =========================================================================

    def get_access_time(self, pathname: Pathname) -> datetime | None:
        return self.stat(pathname).atime

    def set_access_time(self, pathname: Pathname, atime: datetime) -> None:
        self._require(Capability.SET_ACCESS_TIME, pathname)
        with self._dispatch("set_access_time", pathname) as conn:
            self._require_stat(conn, pathname, "set_access_time")
            self._set_times(conn, pathname, atime, None)

    def get_modify_time(self, pathname: Pathname) -> datetime | None:
        return self.stat(pathname).mtime

    def set_modify_time(self, pathname: Pathname, mtime: datetime) -> None:
        self._require(Capability.SET_MODIFY_TIME, pathname)
        with self._dispatch("set_modify_time", pathname) as conn:
            self._require_stat(conn, pathname, "set_modify_time")
            self._set_times(conn, pathname, None, mtime)

    def get_creation_time(self, pathname: Pathname) -> datetime | None:
        self._require(Capability.CREATION_TIME, pathname)
        return self.stat(pathname).ctime

    def touch(
        self,
        pathname: Pathname,
        time: datetime | None = None,
        atime: datetime | None = None,
        create: bool = True,
    ) -> None:
        """Set access and modify time, creating an empty file if allowed.

        *time* defaults to now and *atime* to *time*.
        """
        self._require(Capability.TOUCH, pathname)
        mtime = time or datetime.now(UTC)
        atime = atime or mtime
        with self._dispatch("touch", pathname) as conn:
            if self._stat(conn, pathname) is None:
                if not create:
                    raise PathNotFoundError(
                        f"No such file or directory: {pathname.full}",
                        path=pathname.full,
                        operation="touch",
                    )
                self._require_parent(conn, pathname, "touch", parents=False)
                self._write(conn, pathname, b"")
            self._set_times(conn, pathname, atime, mtime)

    def get_owner(self, pathname: Pathname) -> int | None:
        return self.stat(pathname).uid

    def set_owner(self, pathname: Pathname, uid: int) -> None:
        self._require(Capability.SET_OWNER, pathname)
        with self._dispatch("set_owner", pathname) as conn:
            self._require_stat(conn, pathname, "set_owner")
            self._chown(conn, pathname, uid, None)

    def get_group(self, pathname: Pathname) -> int | None:
        return self.stat(pathname).gid

    def set_group(self, pathname: Pathname, gid: int) -> None:
        self._require(Capability.SET_GROUP, pathname)
        with self._dispatch("set_group", pathname) as conn:
            self._require_stat(conn, pathname, "set_group")
            self._chown(conn, pathname, None, gid)

    def get_mode(self, pathname: Pathname) -> int:
        return self.stat(pathname).permissions

    def set_mode(self, pathname: Pathname, mode: int) -> None:
        self._require(Capability.SET_MODE, pathname)
        with self._dispatch("set_mode", pathname) as conn:
            self._require_stat(conn, pathname, "set_mode")
            self._chmod(conn, pathname, mode)

    def is_readable(self, pathname: Pathname) -> bool:
        return mode_is_readable(self.get_mode(pathname))

    def is_writable(self, pathname: Pathname) -> bool:
        return mode_is_writable(self.get_mode(pathname))

    def is_executable(self, pathname: Pathname) -> bool:
        return mode_is_executable(self.get_mode(pathname))

    def get_size(self, pathname: Pathname, recursive: bool = False) -> int:
        """File size; directories are 0 unless *recursive* sums their subtree."""
        with self._dispatch("get_size", pathname) as conn:
            st = self._require_stat(conn, pathname, "get_size")
            return self._size(conn, pathname, st, recursive)

    def _size(self, conn: C, pathname: Pathname, st: StatRecord, recursive: bool) -> int:
        if st.type is not NodeType.DIRECTORY:
            return st.size
        if not recursive:
            return 0
        total = 0
        for name in self._children(conn, pathname):
            child = pathname.child(name)
            # lstat so a link cycle cannot recurse forever
            child_st = self._require_stat(conn, child, "get_size", follow=False)
            total += self._size(conn, child, child_st, True)
        return total

    # =========================================================================
    # Content
    # =========================================================================

    def get_contents(self, pathname: Pathname) -> bytes:
        with self._dispatch("get_contents", pathname) as conn:
            self._require_file(conn, pathname, "get_contents")
            return self._read(conn, pathname)

    def set_contents(self, pathname: Pathname, content: bytes | str, create: bool = True) -> None:
        """Replace the whole content of a file."""
        data = self._to_bytes(content)
        with self._dispatch("set_contents", pathname) as conn:
            st = self._stat(conn, pathname)
            if st is None:
                if not create:
                    raise PathNotFoundError(
                        f"No such file: {pathname.full}",
                        path=pathname.full,
                        operation="set_contents",
                    )
                self._require_parent(conn, pathname, "set_contents", parents=False)
            elif st.type is NodeType.DIRECTORY:
                raise AlreadyExistsError(
                    f"Path is a directory, not a file: {pathname.full}",
                    path=pathname.full,
                    operation="set_contents",
                )
            self._write(conn, pathname, data)

    def append_contents(
        self, pathname: Pathname, content: bytes | str, create: bool = True
    ) -> None:
        self._require(Capability.APPEND, pathname)
        data = self._to_bytes(content)
        with self._dispatch("append_contents", pathname) as conn:
            st = self._stat(conn, pathname)
            if st is None:
                if not create:
                    raise PathNotFoundError(
                        f"No such file: {pathname.full}",
                        path=pathname.full,
                        operation="append_contents",
                    )
                self._require_parent(conn, pathname, "append_contents", parents=False)
                self._write(conn, pathname, data)
                return
            self._require_file(conn, pathname, "append_contents")
            self._append(conn, pathname, data)

    def truncate(self, pathname: Pathname, size: int = 0) -> None:
        self._require(Capability.TRUNCATE, pathname)
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        with self._dispatch("truncate", pathname) as conn:
            self._require_file(conn, pathname, "truncate")
            self._truncate(conn, pathname, size)

    # =========================================================================
    # Directories
    # =========================================================================

    def create_directory(self, pathname: Pathname, parents: bool = False) -> None:
        """Create a directory; an existing directory is left alone."""
        with self._dispatch("create_directory", pathname) as conn:
            self._create_directory(conn, pathname, parents)

    def _create_directory(self, conn: C, pathname: Pathname, parents: bool) -> None:
        st = self._stat(conn, pathname)
        if st is not None:
            if st.type is NodeType.DIRECTORY:
                return
            raise AlreadyExistsError(
                f"Path already exists and is not a directory: {pathname.full}",
                path=pathname.full,
                operation="create_directory",
            )
        self._require_parent(conn, pathname, "create_directory", parents)
        self._mkdir(conn, pathname)

    def create_file(self, pathname: Pathname, parents: bool = False) -> None:
        """Create an empty file; an existing file is left untouched."""
        with self._dispatch("create_file", pathname) as conn:
            st = self._stat(conn, pathname)
            if st is not None:
                if st.type is NodeType.DIRECTORY:
                    raise AlreadyExistsError(
                        f"Path already exists and is a directory: {pathname.full}",
                        path=pathname.full,
                        operation="create_file",
                    )
                return
            self._require_parent(conn, pathname, "create_file", parents)
            self._write(conn, pathname, b"")

    def ls(self, pathname: Pathname) -> list[str]:
        """Names of direct children, case-insensitively sorted."""
        with self._dispatch("ls", pathname) as conn:
            st = self._require_stat(conn, pathname, "ls")
            if st.type is not NodeType.DIRECTORY:
                raise AlreadyExistsError(
                    f"Not a directory: {pathname.full}",
                    path=pathname.full,
                    operation="ls",
                )
            return self._children(conn, pathname)

    def delete(self, pathname: Pathname, recursive: bool = False) -> None:
        """Delete a file or directory.

        A non-empty directory is only removed when *recursive* is set;
        otherwise :class:`DirectoryNotEmptyError` is raised and nothing is
        deleted.
        """
        with self._dispatch("delete", pathname) as conn:
            st = self._require_stat(conn, pathname, "delete", follow=False)
            if pathname.is_root and st.type is NodeType.DIRECTORY:
                raise AdapterError(
                    "Refusing to delete the adapter root",
                    path=pathname.full,
                    operation="delete",
                )
            self._delete_node(conn, pathname, st, recursive)

    def _delete_node(self, conn: C, pathname: Pathname, st: StatRecord, recursive: bool) -> None:
        if st.type is not NodeType.DIRECTORY:
            self._remove_file(conn, pathname)
            return
        children = self._children(conn, pathname)
        if children and not recursive:
            raise DirectoryNotEmptyError(
                f"Directory not empty: {pathname.full}",
                path=pathname.full,
                operation="delete",
            )
        for name in children:
            child = pathname.child(name)
            child_st = self._stat(conn, child, follow=False)
            if child_st is not None:
                self._delete_node(conn, child, child_st, True)
        self._remove_dir(conn, pathname)

    # =========================================================================
    # Move
    # =========================================================================

    def native_move(self, src: Pathname, dst: Pathname) -> bool:
        """Rename *src* to *dst* inside this backend.

        Returns False, without touching the connection, when either pathname
        belongs to a different adapter instance, and False when the backend's
        rename primitive fails.  False means "not handled here"; the caller
        falls back to copy-then-delete.
        """
        if src.adapter is not self or dst.adapter is not self:
            return False
        # The root cannot be renamed, and nothing moves into its own subtree
        if src.is_root or is_within(dst.local, src.local):
            return False
        with self._dispatch("native_move", src) as conn:
            if self._stat(conn, src, follow=False) is None:
                return False
            moved = self._rename(conn, src, dst)
        if not moved:
            logger.debug("Native move %s -> %s refused by %s", src.full, dst.full, self.describe())
        return moved

    # =========================================================================
    # Streams
    # =========================================================================

    def get_stream(self, pathname: Pathname) -> BinaryIO:
        """Readable and writable binary stream positioned at the start.

        Backends without native streams hand out a :class:`TemporaryStream`;
        its local copy is deleted when the stream is closed and changes are
        written back first.
        """
        with self._dispatch("get_stream", pathname) as conn:
            self._require_file(conn, pathname, "get_stream")
            native = self._open_stream(conn, pathname)
            if native is not None:
                return native
            return TemporaryStream(
                pathname.full,
                fill=lambda f: self._fill_stream(conn, pathname, f),
                writeback=lambda f: self._write_back(pathname, f),
            )

    def _write_back(self, pathname: Pathname, fileobj: BinaryIO) -> None:
        with self._dispatch("get_stream", pathname) as conn:
            self._drain_stream(conn, pathname, fileobj)

    def get_stream_url(self, pathname: Pathname) -> str:
        self._require(Capability.STREAM_URL, pathname)
        with self._dispatch("get_stream_url", pathname) as conn:
            self._require_stat(conn, pathname, "get_stream_url")
            return self._stream_url(conn, pathname)

    # =========================================================================
    # MIME
    # =========================================================================

    def get_mime_type(self, pathname: Pathname) -> str:
        self._require(Capability.MIME, pathname)
        return self._mime(pathname, "get_mime_type")[0]

    def get_mime_encoding(self, pathname: Pathname) -> str:
        self._require(Capability.MIME, pathname)
        return self._mime(pathname, "get_mime_encoding")[1]

    def get_mime_name(self, pathname: Pathname) -> str:
        self._require(Capability.MIME, pathname)
        return mime_name(*self._mime(pathname, "get_mime_name"))

    def _mime(self, pathname: Pathname, operation: str) -> tuple[str, str]:
        with self._dispatch(operation, pathname) as conn:
            st = self._require_stat(conn, pathname, operation)
            if st.type is NodeType.DIRECTORY:
                return "inode/directory", "binary"
            chunk = self._sniff(conn, pathname)
        return guess_mime_type(pathname.name, chunk), detect_encoding(chunk, pathname.name)

    # =========================================================================
    # Capacity
    # =========================================================================

    def get_free_space(self, pathname: Pathname) -> int:
        self._require(Capability.FREE_SPACE, pathname)
        with self._dispatch("get_free_space", pathname) as conn:
            self._require_stat(conn, pathname, "get_free_space")
            return self._disk_usage(conn, pathname)[1]

    def get_total_space(self, pathname: Pathname) -> int:
        self._require(Capability.TOTAL_SPACE, pathname)
        with self._dispatch("get_total_space", pathname) as conn:
            self._require_stat(conn, pathname, "get_total_space")
            return self._disk_usage(conn, pathname)[0]

    def info(self) -> dict[str, Any]:
        """Secret-free summary of this adapter, for diagnostics."""
        return {
            "adapter": type(self).__name__,
            "description": self.describe(),
            "state": self.state.value,
            "capabilities": sorted(c.value for c in self.capabilities),
        }
