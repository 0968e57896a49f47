"""Storage adapters — local disk, SFTP, SQL database."""

from mountfs.adapters.database import DatabaseAdapter
from mountfs.adapters.local import LocalAdapter
from mountfs.adapters.sftp import SFTPAdapter

__all__ = [
    "DatabaseAdapter",
    "LocalAdapter",
    "SFTPAdapter",
]
