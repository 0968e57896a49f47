"""DatabaseAdapter — file tree stored in a SQL database via SQLModel."""

from __future__ import annotations

import hashlib
import logging
import posixpath
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlmodel import Session, SQLModel, col, select

from ..adapter import Adapter, Capability
from ..config import BASEPATH, DEFAULT_BASEPATH, DSN, AdapterConfig
from ..exceptions import AdapterError
from ..models import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE, NodeRecord
from ..types import NodeType, StatRecord
from ..utils import compose_path, is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine

    from ..pathname import Pathname

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConnection:
    """Engine plus the absolute path of the adapter root inside the table."""

    engine: Engine
    base_dir: str


class DatabaseAdapter(Adapter[DatabaseConnection]):
    """Stores the whole tree in one table, portable across SQL dialects.

    ``DSN`` selects the database and ``BASEPATH`` the subtree exposed as "/".
    The table is created on first connect, along with the directory records
    leading to the base path.  Links, stream URLs and disk capacity have no
    meaning here and are not declared.
    """

    capabilities = frozenset({
        Capability.SET_ACCESS_TIME,
        Capability.SET_MODIFY_TIME,
        Capability.TOUCH,
        Capability.CREATION_TIME,
        Capability.SET_OWNER,
        Capability.SET_GROUP,
        Capability.SET_MODE,
        Capability.APPEND,
        Capability.TRUNCATE,
        Capability.MIME,
    })

    def __init__(
        self,
        dsn: str | None = None,
        basepath: str | None = None,
        *,
        config: AdapterConfig | None = None,
        uid: int = 0,
        gid: int = 0,
    ) -> None:
        config = config if config is not None else AdapterConfig()
        with config.batch():
            if dsn:
                config.set(DSN, dsn)
            if basepath:
                config.set(BASEPATH, basepath)
        self.uid = uid
        self.gid = gid
        super().__init__(config)

    def describe(self) -> str:
        dsn = str(self.config.get(DSN, ""))
        # Keep credentials out of logs
        if "@" in dsn:
            scheme, _, rest = dsn.partition("://")
            dsn = f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
        return f"{dsn}#{self._basepath()}"

    def _basepath(self) -> str:
        return normalize_path(self.config.get(BASEPATH, DEFAULT_BASEPATH))

    # =========================================================================
    # Connection
    # =========================================================================

    def connection_identity(self) -> str:
        material = f"{self.config.get(DSN, '')}\0{self._basepath()}"
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def _open_connection(self) -> DatabaseConnection:
        dsn = self.config.get(DSN)
        if not dsn:
            raise AdapterError("No DSN configured for database adapter", operation="connect")
        engine = create_engine(dsn, echo=False)
        try:
            SQLModel.metadata.create_all(engine, tables=[NodeRecord.__table__])  # type: ignore[attr-defined]
            base_dir = self._basepath()
            with Session(engine) as session:
                self._ensure_dirs(session, base_dir)
                session.commit()
        except BaseException:
            engine.dispose()
            raise
        return DatabaseConnection(engine=engine, base_dir=base_dir)

    def _close_connection(self, connection: DatabaseConnection) -> None:
        connection.engine.dispose()

    def _ensure_dirs(self, session: Session, path: str) -> None:
        """Create directory records for *path* and all its ancestors."""
        current = "/"
        chain = ["/"]
        for part in path.strip("/").split("/"):
            if part:
                current = posixpath.join(current, part)
                chain.append(current)
        for dir_path in chain:
            if self._get(session, dir_path) is None:
                session.add(self._new_record(dir_path, NodeType.DIRECTORY))
                session.flush()

    # =========================================================================
    # Session helpers
    # =========================================================================

    @contextmanager
    def _session(self, conn: DatabaseConnection) -> Iterator[Session]:
        """Per-primitive session: commit on success, roll back on error."""
        session = Session(conn.engine)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _get(session: Session, path: str) -> NodeRecord | None:
        return session.exec(select(NodeRecord).where(NodeRecord.path == path)).first()

    def _new_record(self, path: str, node_type: NodeType, content: bytes | None = None) -> NodeRecord:
        parent, name = posixpath.split(path) if path != "/" else ("", "")
        is_dir = node_type is NodeType.DIRECTORY
        return NodeRecord(
            path=path,
            parent_path=parent,
            name=name,
            node_type=node_type.value,
            content=None if is_dir else (content or b""),
            size_bytes=0 if is_dir else len(content or b""),
            mode=DEFAULT_DIR_MODE if is_dir else DEFAULT_FILE_MODE,
            uid=self.uid,
            gid=self.gid,
        )

    def _require_record(self, session: Session, conn: DatabaseConnection, pathname: Pathname) -> NodeRecord:
        record = self._get(session, self._abs(conn, pathname))
        if record is None:
            raise FileNotFoundError(pathname.full)
        return record

    @staticmethod
    def _abs(conn: DatabaseConnection, pathname: Pathname) -> str:
        return compose_path(conn.base_dir, pathname.local)

    @staticmethod
    def _aware(value: datetime | None) -> datetime | None:
        # SQLite hands back naive datetimes even for timezone-aware columns
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    # =========================================================================
    # Primitives
    # =========================================================================

    def _stat(self, conn: DatabaseConnection, pathname: Pathname, *, follow: bool = True) -> StatRecord | None:
        with self._session(conn) as session:
            record = self._get(session, self._abs(conn, pathname))
            if record is None:
                return None
            return StatRecord(
                type=NodeType(record.node_type),
                size=0 if record.node_type == NodeType.DIRECTORY.value else record.size_bytes,
                atime=self._aware(record.accessed_at),
                mtime=self._aware(record.updated_at),
                uid=record.uid,
                gid=record.gid,
                permissions=record.mode,
                ctime=self._aware(record.created_at),
            )

    def _list(self, conn: DatabaseConnection, pathname: Pathname) -> list[str]:
        with self._session(conn) as session:
            rows = session.exec(
                select(NodeRecord.name).where(NodeRecord.parent_path == self._abs(conn, pathname))
            ).all()
        return list(rows)

    def _read(self, conn: DatabaseConnection, pathname: Pathname) -> bytes:
        with self._session(conn) as session:
            return self._require_record(session, conn, pathname).content or b""

    def _write(self, conn: DatabaseConnection, pathname: Pathname, data: bytes) -> None:
        path = self._abs(conn, pathname)
        with self._session(conn) as session:
            record = self._get(session, path)
            if record is None:
                session.add(self._new_record(path, NodeType.FILE, data))
                return
            record.content = data
            record.size_bytes = len(data)
            record.updated_at = datetime.now(UTC)
            session.add(record)

    def _mkdir(self, conn: DatabaseConnection, pathname: Pathname) -> None:
        with self._session(conn) as session:
            session.add(self._new_record(self._abs(conn, pathname), NodeType.DIRECTORY))

    def _remove_file(self, conn: DatabaseConnection, pathname: Pathname) -> None:
        with self._session(conn) as session:
            session.delete(self._require_record(session, conn, pathname))

    def _remove_dir(self, conn: DatabaseConnection, pathname: Pathname) -> None:
        self._remove_file(conn, pathname)

    def _rename(self, conn: DatabaseConnection, src: Pathname, dst: Pathname) -> bool:
        src_path = self._abs(conn, src)
        dst_path = self._abs(conn, dst)
        if src_path == dst_path:
            return True
        if src_path in ("/", conn.base_dir) or is_within(dst_path, src_path):
            return False
        with self._session(conn) as session:
            record = self._get(session, src_path)
            if record is None:
                return False
            parent, name = posixpath.split(dst_path)
            parent_record = self._get(session, parent)
            if parent_record is None or parent_record.node_type != NodeType.DIRECTORY.value:
                return False

            existing = self._get(session, dst_path)
            if existing is not None:
                if existing.node_type == NodeType.DIRECTORY.value or record.node_type == NodeType.DIRECTORY.value:
                    return False
                session.delete(existing)
                session.flush()

            if record.node_type == NodeType.DIRECTORY.value:
                prefix = src_path + "/"
                descendants = session.exec(
                    select(NodeRecord).where(col(NodeRecord.path).startswith(prefix, autoescape=True))
                ).all()
                for child in descendants:
                    child.path = dst_path + child.path[len(src_path):]
                    child.parent_path = dst_path + child.parent_path[len(src_path):]
                    session.add(child)

            record.path = dst_path
            record.parent_path = parent
            record.name = name
            session.add(record)
        return True

    # =========================================================================
    # Optional primitives
    # =========================================================================

    def _set_times(
        self, conn: DatabaseConnection, pathname: Pathname, atime: datetime | None, mtime: datetime | None
    ) -> None:
        with self._session(conn) as session:
            record = self._require_record(session, conn, pathname)
            if atime is not None:
                record.accessed_at = atime
            if mtime is not None:
                record.updated_at = mtime
            session.add(record)

    def _chown(self, conn: DatabaseConnection, pathname: Pathname, uid: int | None, gid: int | None) -> None:
        with self._session(conn) as session:
            record = self._require_record(session, conn, pathname)
            if uid is not None:
                record.uid = uid
            if gid is not None:
                record.gid = gid
            session.add(record)

    def _chmod(self, conn: DatabaseConnection, pathname: Pathname, mode: int) -> None:
        with self._session(conn) as session:
            record = self._require_record(session, conn, pathname)
            record.mode = mode & 0o7777
            session.add(record)

    def _append(self, conn: DatabaseConnection, pathname: Pathname, data: bytes) -> None:
        with self._session(conn) as session:
            record = self._require_record(session, conn, pathname)
            record.content = (record.content or b"") + data
            record.size_bytes = len(record.content)
            record.updated_at = datetime.now(UTC)
            session.add(record)

    def _truncate(self, conn: DatabaseConnection, pathname: Pathname, size: int) -> None:
        with self._session(conn) as session:
            record = self._require_record(session, conn, pathname)
            content = record.content or b""
            # Growing pads with NUL bytes, as truncate(2) does
            record.content = content[:size].ljust(size, b"\x00")
            record.size_bytes = size
            record.updated_at = datetime.now(UTC)
            session.add(record)
