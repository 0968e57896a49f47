"""MountRegistry and MountConfig."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import MountNotFoundError
from .pathname import Pathname
from .permissions import Permission
from .utils import is_within, normalize_path

if TYPE_CHECKING:
    from .adapter import Adapter


@dataclass
class MountConfig:
    """Configuration for a single mount point."""

    mount_path: str
    """Abstract path prefix, e.g. "/", "/remote", "/remote/cache"."""

    adapter: Adapter
    """Adapter serving this subtree."""

    permission: Permission = Permission.READ_WRITE
    """Default permission for this mount."""

    label: str = ""
    """Display name for the mount."""

    hidden: bool = False
    """If True, this mount is excluded from ``list_visible_mounts()``."""

    read_only_paths: set[str] = field(default_factory=set)
    """Adapter-local paths within this mount that are forced read-only."""

    def __post_init__(self) -> None:
        self.mount_path = normalize_path(self.mount_path)
        self.read_only_paths = {normalize_path(p) for p in self.read_only_paths}
        if not self.label:
            self.label = self.mount_path.lstrip("/") or "root"


class MountRegistry:
    """Registry of active mount points.

    Resolves abstract paths to :class:`Pathname` values and determines
    effective permissions for any path.  Resolution is pure: it never
    touches an adapter's connection.
    """

    def __init__(self) -> None:
        self._mounts: dict[str, MountConfig] = {}

    def add_mount(self, config: MountConfig) -> None:
        """Add or replace a mount point."""
        self._mounts[config.mount_path] = config

    def remove_mount(self, mount_path: str) -> MountConfig | None:
        """Remove a mount point, returning it if it existed."""
        return self._mounts.pop(normalize_path(mount_path), None)

    def resolve_mount(self, path: str) -> tuple[MountConfig, str]:
        """Resolve an abstract path to its mount and adapter-local path.

        Finds the longest matching mount prefix and strips it.  Matching is
        per component: "/datafile" does not fall under a "/data" mount.
        """
        path = normalize_path(path)

        best_match: MountConfig | None = None
        best_len = -1

        for mount_path, config in self._mounts.items():
            matches = path == mount_path or is_within(path, mount_path)
            if matches and len(mount_path) > best_len:
                best_match = config
                best_len = len(mount_path)

        if best_match is None:
            raise MountNotFoundError(f"No mount found for path: {path}", path=path)

        relative = path if best_match.mount_path == "/" else path[best_len:]
        if not relative:
            relative = "/"
        elif not relative.startswith("/"):
            relative = "/" + relative

        return best_match, relative

    def resolve(self, path: str) -> Pathname:
        """Resolve an abstract path to a :class:`Pathname`."""
        mount, relative = self.resolve_mount(path)
        return Pathname(full=path, local=relative, adapter=mount.adapter)

    def list_mounts(self) -> list[MountConfig]:
        """List all registered mounts, sorted by mount_path."""
        return sorted(self._mounts.values(), key=lambda m: m.mount_path)

    def list_visible_mounts(self) -> list[MountConfig]:
        """List non-hidden mounts, sorted by mount_path."""
        return [m for m in self.list_mounts() if not m.hidden]

    def get_permission(self, path: str) -> Permission:
        """Get the effective permission for an abstract path."""
        mount, relative = self.resolve_mount(path)

        if mount.permission == Permission.READ_ONLY:
            return Permission.READ_ONLY

        current = normalize_path(relative)
        while True:
            if current in mount.read_only_paths:
                return Permission.READ_ONLY
            if current == "/":
                break
            current = current.rsplit("/", 1)[0] or "/"

        return mount.permission

    def has_mount(self, mount_path: str) -> bool:
        """Check if a mount exists at the given path."""
        return normalize_path(mount_path) in self._mounts

    def mounts_below(self, path: str) -> list[MountConfig]:
        """Mounts whose mount point lies strictly inside *path*."""
        return [m for m in self.list_mounts() if is_within(m.mount_path, path)]
