"""
winsync.world.medium

Shared key-value media that every context can reach, plus their change
notifications. This is the only channel between contexts.

Every medium exposes the same duck-typed surface:
- get_item(key) -> Optional[str]
- set_item(key, value) -> None
- remove_item(key) -> None
- subscribe(listener) -> unsubscribe callable; listener(key) is called when
  ANOTHER context changed key (never for the subscriber's own writes)
- pump() -> None; gives pull-based media a chance to detect outside changes

Backends:
- MemoryMedium: in-process dict. Each simulated context calls connect() to
  get its own handle, so writes notify every handle except the writer.
- FileMedium: one file per key inside a directory shared by processes on the
  same host. pump() polls file signatures to notice writes by other processes.
"""

from __future__ import annotations

import itertools
import os
import tempfile
from typing import Callable, Dict, Iterator, List, Optional, Tuple

# Lazy logger to avoid circular imports
_logger = None


def _get_logger():
    """Lazy-load logger."""
    global _logger
    if _logger is None:
        from winsync.core.logger import get_logger
        _logger = get_logger()
    return _logger


Listener = Callable[[str], None]


class _ListenerSet:
    """Subscriber bookkeeping shared by the medium backends."""

    def __init__(self):
        self._listeners: Dict[int, Listener] = {}
        self._next_token = itertools.count(1)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        token = next(self._next_token)
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def notify(self, key: str) -> None:
        for listener in list(self._listeners.values()):
            listener(key)

    def __len__(self) -> int:
        return len(self._listeners)


# ============================================================================
# In-process medium
# ============================================================================

class MemoryMedium:
    """
    Dict-backed medium shared by simulated contexts in one process.

    Writes made directly on the medium (not through a handle) come from
    "outside" and notify every handle.
    """

    def __init__(self):
        self._items: Dict[str, str] = {}
        self._handles: List["MemoryMediumHandle"] = []
        self.notifications_enabled = True

    def connect(self) -> "MemoryMediumHandle":
        """Open a per-context handle onto this medium."""
        handle = MemoryMediumHandle(self)
        self._handles.append(handle)
        return handle

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._write(key, value, origin=None)

    def remove_item(self, key: str) -> None:
        self._remove(key, origin=None)

    def keys(self) -> List[str]:
        return list(self._items.keys())

    def _write(self, key: str, value: str, origin: Optional["MemoryMediumHandle"]) -> None:
        self._items[key] = str(value)
        self._broadcast(key, origin)

    def _remove(self, key: str, origin: Optional["MemoryMediumHandle"]) -> None:
        if self._items.pop(key, None) is not None:
            self._broadcast(key, origin)

    def _broadcast(self, key: str, origin: Optional["MemoryMediumHandle"]) -> None:
        if not self.notifications_enabled:
            return
        for handle in list(self._handles):
            if handle is not origin:
                handle._listeners.notify(key)


class MemoryMediumHandle:
    """One context's view of a MemoryMedium."""

    def __init__(self, medium: MemoryMedium):
        self._medium = medium
        self._listeners = _ListenerSet()

    def get_item(self, key: str) -> Optional[str]:
        return self._medium.get_item(key)

    def set_item(self, key: str, value: str) -> None:
        self._medium._write(key, value, origin=self)

    def remove_item(self, key: str) -> None:
        self._medium._remove(key, origin=self)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._listeners.subscribe(listener)

    def pump(self) -> None:
        """Notifications are pushed on write; nothing to poll."""
        return None


# ============================================================================
# File-backed medium
# ============================================================================

Signature = Tuple[int, int]


class FileMedium:
    """
    Directory-backed medium for contexts running as separate processes.

    Each key is stored as <directory>/<key>.json and replaced atomically, so a
    reader sees either the old or the new value, never a torn write.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)
        self._listeners = _ListenerSet()
        # Last signature observed (or produced) for each key
        self._signatures: Dict[str, Optional[Signature]] = {}

    def _path(self, key: str) -> str:
        if not key or os.sep in key or (os.altsep and os.altsep in key) or key.startswith("."):
            raise ValueError(f"invalid medium key: {key!r}")
        return os.path.join(self.directory, key + self.SUFFIX)

    def _signature(self, path: str) -> Optional[Signature]:
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def get_item(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(str(value))
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        # Own writes must not come back as notifications
        self._signatures[key] = self._signature(path)

    def remove_item(self, key: str) -> None:
        try:
            os.unlink(self._path(key))
        except FileNotFoundError:
            pass
        self._signatures[key] = None

    def keys(self) -> List[str]:
        return list(self._scan_keys())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        # Changes made before the first subscription are not news
        if not len(self._listeners):
            self._scan_changes()
        return self._listeners.subscribe(listener)

    def _scan_keys(self) -> Iterator[str]:
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return
        for name in names:
            if name.endswith(self.SUFFIX) and not name.startswith("."):
                yield name[: -len(self.SUFFIX)]

    def _scan_changes(self) -> List[str]:
        """Record current file signatures and get the keys whose signature moved."""
        keys = set(self._scan_keys()) | set(self._signatures.keys())
        changed: List[str] = []
        for key in keys:
            sig = self._signature(self._path(key))
            if self._signatures.get(key) != sig:
                self._signatures[key] = sig
                changed.append(key)
        return sorted(changed)

    def pump(self) -> None:
        """Detect keys changed by other processes and notify subscribers."""
        for key in self._scan_changes():
            _get_logger().debug(f"[MEDIUM] external change key={key}")
            self._listeners.notify(key)
