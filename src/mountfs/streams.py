"""TemporaryStream — a local temp-file copy standing in for a remote file."""

from __future__ import annotations

import logging
import tempfile
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

logger = logging.getLogger(__name__)


class TemporaryStream(BinaryIO):
    """Read/write binary stream over a private temporary file.

    The temporary file is filled by *fill* on construction and deleted when
    the stream is closed.  If anything was written, *writeback* receives the
    temporary file (rewound) before deletion so the backend can store the new
    content.  Deletion happens on every exit path, including a failing fill
    or a failing writeback.
    """

    def __init__(
        self,
        name: str,
        *,
        fill: Callable[[BinaryIO], None],
        writeback: Callable[[BinaryIO], None] | None = None,
    ) -> None:
        self._name = name
        self._writeback = writeback
        self._dirty = False
        self._file: BinaryIO = tempfile.TemporaryFile(prefix="mountfs_stream_")  # noqa: SIM115
        try:
            fill(self._file)
            self._file.seek(0)
        except BaseException:
            self._file.close()
            raise

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<TemporaryStream {self._name!r} {state}>"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> TemporaryStream:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def __del__(self) -> None:
        file = getattr(self, "_file", None)
        if file is not None and not file.closed:
            logger.warning("TemporaryStream %s was not closed; discarding changes", self._name)
            file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    @property
    def name(self) -> str:  # type: ignore[override]
        return self._name

    @property
    def mode(self) -> str:
        return "r+b"

    @property
    def dirty(self) -> bool:
        """True once anything has been written."""
        return self._dirty

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            if self._dirty and self._writeback is not None:
                self._file.flush()
                self._file.seek(0)
                self._writeback(self._file)
                self._dirty = False
        finally:
            self._file.close()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, n: int = -1) -> bytes:
        return self._file.read(n)

    def readline(self, limit: int = -1) -> bytes:
        return self._file.readline(limit)

    def readlines(self, hint: int = -1) -> list[bytes]:
        return self._file.readlines(hint)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._file)

    def __next__(self) -> bytes:
        return next(self._file)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, data: bytes) -> int:  # type: ignore[override]
        self._dirty = True
        return self._file.write(data)

    def writelines(self, lines: Iterable[bytes]) -> None:  # type: ignore[override]
        self._dirty = True
        self._file.writelines(lines)

    def truncate(self, size: int | None = None) -> int:
        self._dirty = True
        return self._file.truncate(size)

    def flush(self) -> None:
        self._file.flush()

    # ------------------------------------------------------------------
    # Positioning
    # ------------------------------------------------------------------

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._file.seek(offset, whence)

    def tell(self) -> int:
        return self._file.tell()

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def isatty(self) -> bool:
        return False

    def fileno(self) -> int:
        return self._file.fileno()
