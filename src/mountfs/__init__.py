"""mountfs: one filesystem interface over local disk, SFTP and SQL storage.

Adapters implement a uniform operation contract; a mount registry resolves
abstract paths to the adapter that owns them.
"""

__version__ = "0.1.0"

from mountfs.adapter import Adapter, Capability
from mountfs.adapters import DatabaseAdapter, LocalAdapter, SFTPAdapter
from mountfs.config import AdapterConfig
from mountfs.connection import ConnectionManager, ConnectionState
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
from mountfs.filesystem import Filesystem
from mountfs.mounts import MountConfig, MountRegistry
from mountfs.pathname import Pathname
from mountfs.permissions import Permission
from mountfs.streams import TemporaryStream
from mountfs.types import MoveResult, NodeType, StatRecord

__all__ = [
    "Adapter",
    "AdapterConfig",
    "AdapterError",
    "AlreadyExistsError",
    "Capability",
    "ConnectionManager",
    "ConnectionState",
    "DatabaseAdapter",
    "DirectoryNotEmptyError",
    "ErrorKind",
    "Filesystem",
    "LocalAdapter",
    "MountConfig",
    "MountFSError",
    "MountNotFoundError",
    "MountRegistry",
    "MoveResult",
    "NodeType",
    "PathNotFoundError",
    "Pathname",
    "Permission",
    "SFTPAdapter",
    "StatRecord",
    "TemporaryStream",
    "UnsupportedOperationError",
    "__version__",
]
