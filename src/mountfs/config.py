"""AdapterConfig — key/value adapter settings with change notification."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

logger = logging.getLogger(__name__)

# Recognized option keys
HOST = "HOST"
PORT = "PORT"
USERNAME = "USERNAME"
PASSWORD = "PASSWORD"
KEY = "KEY"
KEY_FILE = "KEY_FILE"
BASEPATH = "BASEPATH"
DSN = "DSN"

DEFAULT_BASEPATH = "/"

SECRET_KEYS = frozenset({PASSWORD, KEY})


class AdapterConfig:
    """Mutable key/value settings for one adapter instance.

    Listeners registered with :meth:`register` are called with the config
    after every committed change.  Wrap several mutations in
    :meth:`batch` to get a single notification for all of them.  A ``set``
    that leaves the stored value unchanged does not notify.
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {}
        self._listeners: list[Callable[[AdapterConfig], None]] = []
        self._batch_depth = 0
        self._dirty = False
        if values:
            for key, value in values.items():
                if value is not None:
                    self._values[key] = value

    def __repr__(self) -> str:
        shown = {
            k: ("***" if k in SECRET_KEYS else v) for k, v in sorted(self._values.items())
        }
        return f"AdapterConfig({shown!r})"

    def __contains__(self, key: str) -> bool:
        return key in self._values

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def register(self, listener: Callable[[AdapterConfig], None]) -> None:
        """Append *listener* to the change listeners."""
        self._listeners.append(listener)

    def unregister(self, listener: Callable[[AdapterConfig], None]) -> bool:
        """Remove first occurrence of *listener*. Return True if found."""
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def _changed(self) -> None:
        if self._batch_depth:
            self._dirty = True
            return
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> AdapterConfig:
        """Set *key* to *value*; ``None`` removes the key."""
        if value is None:
            return self.unset(key)
        if key in self._values and self._values[key] == value:
            return self
        self._values[key] = value
        logger.debug("Config key %s changed", key)
        self._changed()
        return self

    def unset(self, key: str) -> AdapterConfig:
        if key in self._values:
            del self._values[key]
            logger.debug("Config key %s removed", key)
            self._changed()
        return self

    def merge(self, other: AdapterConfig | Mapping[str, Any]) -> AdapterConfig:
        """Copy every value of *other* into this config as one change."""
        values = other.as_dict() if isinstance(other, AdapterConfig) else dict(other)
        with self.batch():
            for key, value in values.items():
                self.set(key, value)
        return self

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    @contextmanager
    def batch(self) -> Iterator[AdapterConfig]:
        """Group mutations so listeners are notified once, on exit."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
        if self._batch_depth == 0 and self._dirty:
            self._dirty = False
            self._changed()
