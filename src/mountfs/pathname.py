"""Pathname — an abstract path resolved to its owning adapter."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .utils import join_path, normalize_path

if TYPE_CHECKING:
    from .adapter import Adapter


@dataclass(frozen=True, slots=True)
class Pathname:
    """Resolved pair of (adapter, adapter-local path) for an abstract path.

    ``full`` is the path from the filesystem root; ``local`` is the same node
    relative to the adapter's root, which is always ``full`` with the mount
    prefix stripped.  Both are normalized, so an adapter never observes a
    path outside its own subtree.
    """

    full: str
    local: str
    adapter: Adapter = field(compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "full", normalize_path(self.full))
        object.__setattr__(self, "local", normalize_path(self.local))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pathname):
            return NotImplemented
        return (
            self.full == other.full
            and self.local == other.local
            and self.adapter is other.adapter
        )

    def __hash__(self) -> int:
        return hash((self.full, self.local, id(self.adapter)))

    @property
    def name(self) -> str:
        """Last path component; empty for the root."""
        return posixpath.basename(self.full)

    @property
    def is_root(self) -> bool:
        """True when this pathname is the adapter's root."""
        return self.local == "/"

    def child(self, name: str) -> Pathname:
        """Pathname of a direct child on the same adapter."""
        return Pathname(
            full=join_path(self.full, name),
            local=join_path(self.local, name),
            adapter=self.adapter,
        )

    def parent(self) -> Pathname:
        """Pathname of the parent directory, clamped at the adapter root."""
        if self.is_root:
            return self
        return Pathname(
            full=posixpath.dirname(self.full) or "/",
            local=posixpath.dirname(self.local) or "/",
            adapter=self.adapter,
        )
