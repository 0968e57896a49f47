"""ConnectionManager — lazy connect, identity tracking, invalidation.

One manager per adapter instance.  All state transitions and all operation
dispatch go through a single re-entrant lock, so an invalidation can never
race an operation that is still using the old connection.

States::

    DISCONNECTED --first use--> CONNECTING --ok--> CONNECTED
         ^                          |                  |
         +------- connect failed ---+                  | identity changed
         +------------------------ INVALIDATED <-------+
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from .exceptions import AdapterError, MountFSError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

C = TypeVar("C")


class ConnectionState(str, Enum):
    """Lifecycle states of a backend connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    INVALIDATED = "invalidated"


class ConnectionManager(Generic[C]):
    """Owns the live connection of one adapter.

    Args:
        connect: Opens a new connection.  Any exception it raises is surfaced
            as :class:`AdapterError` (``MountFSError`` subclasses pass through
            unchanged).
        disconnect: Closes a connection.  Failures are logged, never raised.
        name: Label used in log records and error messages, or a callable
            returning it.  A callable is evaluated on every use, so the label
            follows configuration changes.
    """

    def __init__(
        self,
        connect: Callable[[], C],
        disconnect: Callable[[C], None],
        *,
        name: str | Callable[[], str] = "adapter",
    ) -> None:
        self._connect = connect
        self._disconnect = disconnect
        self._name = name
        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._connection: C | None = None
        self._identity: str | None = None
        self._connected_identity: str | None = None
        self.connect_count = 0

    @property
    def name(self) -> str:
        return self._name() if callable(self._name) else self._name

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def identity(self) -> str | None:
        """Most recently reported configuration identity."""
        return self._identity

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    @contextmanager
    def connection(self) -> Iterator[C]:
        """Yield the live connection, connecting first if needed.

        The lock is held for the whole ``with`` block, which serializes
        operations on this adapter.
        """
        with self._lock:
            yield self._ensure_connected()

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the dispatch lock without requiring a connection."""
        with self._lock:
            yield

    def _ensure_connected(self) -> C:
        if self._state is ConnectionState.CONNECTED and self._connection is not None:
            return self._connection

        self._state = ConnectionState.CONNECTING
        logger.debug("Connecting %s", self.name)
        try:
            connection = self._connect()
        except MountFSError:
            self._state = ConnectionState.DISCONNECTED
            raise
        except Exception as e:
            self._state = ConnectionState.DISCONNECTED
            raise AdapterError(
                f"Could not connect {self.name}: {e}", operation="connect"
            ) from e

        self._connection = connection
        self._connected_identity = self._identity
        self._state = ConnectionState.CONNECTED
        self.connect_count += 1
        logger.debug("Connected %s", self.name)
        return connection

    # ------------------------------------------------------------------
    # Configuration changes
    # ------------------------------------------------------------------

    def notify(self, identity: str) -> bool:
        """Report the identity derived from the current configuration.

        Returns True when a live connection was invalidated.
        """
        with self._lock:
            self._identity = identity
            if self._state is not ConnectionState.CONNECTED:
                return False
            if identity == self._connected_identity:
                return False
            logger.debug("Configuration of %s changed, invalidating connection", self.name)
            self._state = ConnectionState.INVALIDATED
            self._drop()
            return True

    def close(self) -> None:
        """Disconnect if connected.  The next operation reconnects."""
        with self._lock:
            if self._connection is not None:
                self._drop()
            self._state = ConnectionState.DISCONNECTED

    def _drop(self) -> None:
        connection = self._connection
        self._connection = None
        self._connected_identity = None
        try:
            if connection is not None:
                self._disconnect(connection)
        except Exception:
            logger.warning("Disconnect failed for %s", self.name, exc_info=True)
        finally:
            self._state = ConnectionState.DISCONNECTED
