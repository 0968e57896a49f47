"""Filesystem — mount router with permissions and cross-adapter move/copy."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .adapter import Capability
from .exceptions import AdapterError, MountNotFoundError
from .mounts import MountConfig, MountRegistry
from .permissions import Permission
from .types import MoveResult, NodeType
from .utils import is_within, normalize_path, sort_names

if TYPE_CHECKING:
    from typing import BinaryIO

    from .adapter import Adapter
    from .pathname import Pathname
    from .types import StatRecord

logger = logging.getLogger(__name__)


class Filesystem:
    """Routes operations to adapters via the mount registry.

    Presents a single namespace to callers while delegating to the adapter
    that owns each path.  Enforces read-only mounts and handles moves and
    copies that cross adapter boundaries.

    Usage::

        fs = Filesystem()
        fs.mount("/", LocalAdapter("/srv/data"))
        fs.mount("/remote", SFTPAdapter("example.org", username="me", password="..."))
        fs.move("/reports/q1.csv", "/remote/archive/q1.csv")
    """

    def __init__(self, registry: MountRegistry | None = None) -> None:
        self._registry = registry if registry is not None else MountRegistry()

    @property
    def registry(self) -> MountRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Mounts
    # ------------------------------------------------------------------

    def mount(self, mount_path: str, adapter: Adapter, **options: Any) -> MountConfig:
        """Mount *adapter* at *mount_path*; extra options go to MountConfig."""
        config = MountConfig(mount_path=mount_path, adapter=adapter, **options)
        self._registry.add_mount(config)
        logger.debug("Mounted %r at %s", adapter, config.mount_path)
        return config

    def unmount(self, mount_path: str) -> None:
        """Remove a mount and disconnect its adapter."""
        config = self._registry.remove_mount(mount_path)
        if config is None:
            raise MountNotFoundError(f"No mount at {mount_path}", path=mount_path)
        config.adapter.close()

    def resolve(self, path: str) -> Pathname:
        return self._registry.resolve(path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> Filesystem:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def close(self) -> None:
        """Disconnect every mounted adapter."""
        for mount in self._registry.list_mounts():
            try:
                mount.adapter.close()
            except Exception:
                logger.warning("Adapter close failed for %s", mount.mount_path, exc_info=True)

    def _check_writable(self, path: str) -> None:
        if self._registry.get_permission(path) == Permission.READ_ONLY:
            raise PermissionError(f"Cannot write to read-only path: {path}")

    # ------------------------------------------------------------------
    # Read Operations
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        p = self.resolve(path)
        return p.adapter.exists(p)

    def is_file(self, path: str) -> bool:
        p = self.resolve(path)
        return p.adapter.is_file(p)

    def is_directory(self, path: str) -> bool:
        p = self.resolve(path)
        return p.adapter.is_directory(p)

    def stat(self, path: str) -> StatRecord:
        p = self.resolve(path)
        return p.adapter.stat(p)

    def get_size(self, path: str, recursive: bool = False) -> int:
        p = self.resolve(path)
        return p.adapter.get_size(p, recursive)

    def get_contents(self, path: str) -> bytes:
        p = self.resolve(path)
        return p.adapter.get_contents(p)

    def ls(self, path: str = "/") -> list[str]:
        """Children of *path*, including mount points directly below it."""
        path = normalize_path(path)
        prefix = "/" if path == "/" else path + "/"
        names = {
            m.mount_path[len(prefix):].split("/", 1)[0]
            for m in self._registry.mounts_below(path)
        }
        try:
            p = self.resolve(path)
        except MountNotFoundError:
            if names:
                return sort_names(list(names))
            raise
        names.update(p.adapter.ls(p))
        return sort_names(list(names))

    # ------------------------------------------------------------------
    # Write Operations
    # ------------------------------------------------------------------

    def set_contents(self, path: str, content: bytes | str, create: bool = True) -> None:
        self._check_writable(path)
        p = self.resolve(path)
        p.adapter.set_contents(p, content, create)

    def create_directory(self, path: str, parents: bool = False) -> None:
        self._check_writable(path)
        p = self.resolve(path)
        p.adapter.create_directory(p, parents)

    def create_file(self, path: str, parents: bool = False) -> None:
        self._check_writable(path)
        p = self.resolve(path)
        p.adapter.create_file(p, parents)

    def delete(self, path: str, recursive: bool = False) -> None:
        self._check_writable(path)
        p = self.resolve(path)
        p.adapter.delete(p, recursive)

    def get_stream(self, path: str) -> BinaryIO:
        p = self.resolve(path)
        return p.adapter.get_stream(p)

    # ------------------------------------------------------------------
    # Move / Copy
    # ------------------------------------------------------------------

    def move(self, src: str, dest: str) -> MoveResult:
        """Move a node, natively when possible, else copy-then-delete.

        The source is deleted only after the destination copy is verified
        to exist.
        """
        src = normalize_path(src)
        dest = normalize_path(dest)
        self._check_writable(src)
        self._check_writable(dest)

        if src == dest:
            return MoveResult(success=True, message=f"Source and destination are the same: {src}",
                              old_path=src, new_path=dest, native=True)
        if is_within(dest, src):
            raise AdapterError(
                f"Cannot move {src} into its own subtree {dest}", path=src, operation="move"
            )

        src_p = self.resolve(src)
        if src_p.is_root:
            raise AdapterError(
                f"Cannot move {src}: it is the root of a mount", path=src, operation="move"
            )
        dest_p = self.resolve(dest)

        if src_p.adapter.native_move(src_p, dest_p):
            return MoveResult(
                success=True, message=f"Moved {src} to {dest}",
                old_path=src, new_path=dest, native=True,
            )

        # Cross-adapter (or refused) move: copy -> verify -> delete
        logger.debug("Falling back to copy-then-delete for %s -> %s", src, dest)
        self._copy_node(src_p, dest_p)
        if not dest_p.adapter.exists(dest_p):
            raise AdapterError(
                f"Copy of {src} did not produce {dest}; source kept",
                path=dest,
                operation="move",
            )
        src_p.adapter.delete(src_p, recursive=True)
        return MoveResult(
            success=True, message=f"Moved {src} to {dest} (copy and delete)",
            old_path=src, new_path=dest, native=False,
        )

    def copy(self, src: str, dest: str) -> None:
        """Copy a file or directory tree, across adapters if needed."""
        src = normalize_path(src)
        dest = normalize_path(dest)
        self._check_writable(dest)
        if dest == src or is_within(dest, src):
            raise AdapterError(
                f"Cannot copy {src} onto itself or into its own subtree",
                path=src,
                operation="copy",
            )
        self._copy_node(self.resolve(src), self.resolve(dest))

    def _copy_node(self, src: Pathname, dest: Pathname) -> None:
        st = src.adapter.stat(src)
        if st.type is NodeType.DIRECTORY:
            dest.adapter.create_directory(dest)
            for name in src.adapter.ls(src):
                self._copy_node(src.child(name), dest.child(name))
        else:
            dest.adapter.set_contents(dest, src.adapter.get_contents(src))

        # Carry metadata over where the destination can express it
        if dest.adapter.supports(Capability.SET_MODE):
            dest.adapter.set_mode(dest, st.permissions)
        if st.mtime is not None and dest.adapter.supports(Capability.SET_MODIFY_TIME):
            dest.adapter.set_modify_time(dest, st.mtime)
