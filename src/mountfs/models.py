"""NodeRecord — table model for the database adapter."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, LargeBinary
from sqlmodel import Field, SQLModel

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755


class NodeBase(SQLModel):
    """Base fields for a stored node. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    path: str = Field(index=True, unique=True)
    parent_path: str = Field(default="", index=True)
    name: str = Field(default="")
    node_type: str = Field(default="file")
    content: bytes | None = Field(default=None, sa_type=LargeBinary)
    size_bytes: int = Field(default=0)
    mode: int = Field(default=DEFAULT_FILE_MODE)
    uid: int = Field(default=0)
    gid: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    accessed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class NodeRecord(NodeBase, table=True):
    """Default node table, ``mountfs_nodes``."""

    __tablename__ = "mountfs_nodes"
