"""
winsync.world.heartbeat

Heartbeat Publisher: re-asserts this context's descriptor in the shared
registry.

A tick publishes (read-modify-write) only when one of these holds:
- shape: the local shape differs from the last one we saw
- heal: a previous read showed our shared entry missing or out of date
  (clobbered by a racing writer, wiped by corruption), or a write failed
- keepalive: HEARTBEAT_INTERVAL_SEC elapsed since the last publish, so peers
  do not reap an idle window

Otherwise the tick leaves the medium untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from winsync.world.descriptor import Registry, Shape, WindowDescriptor, find
from winsync.world.reaper import reap
from winsync.world.registry_merge import merge, upsert
from winsync.world.store import RegistryStore

# Lazy logger to avoid circular imports
_logger = None


def _get_logger():
    """Lazy-load logger."""
    global _logger
    if _logger is None:
        from winsync.core.logger import get_logger
        _logger = get_logger()
    return _logger


@dataclass
class HeartbeatResult:
    """Outcome of one heartbeat tick."""
    view: Registry
    shape_changed: Optional[Shape] = None
    published: bool = False
    reason: Optional[str] = None
    reaped: tuple = ()


class HeartbeatPublisher:
    """Publishes this context's own descriptor."""

    def __init__(
        self,
        store: RegistryStore,
        shape_source: Callable[[], Optional[Shape]],
        keepalive_sec: float,
        stale_after_sec: float,
    ):
        """
        Args:
            store: Registry store shared with peers
            shape_source: Returns the current shape of this window (None = unknown)
            keepalive_sec: Maximum time between publishes of an unchanged descriptor
            stale_after_sec: Liveness window applied to the remote read before merging
        """
        self._store = store
        self._shape_source = shape_source
        self._keepalive_sec = keepalive_sec
        self._stale_after_sec = stale_after_sec

        self.last_shape: Optional[Shape] = None
        self.last_publish_at: Optional[float] = None
        self.publish_count = 0
        self._heal_reason: Optional[str] = None

    def request_publish(self, reason: str) -> None:
        """Force a publish on the next tick."""
        if self._heal_reason is None:
            self._heal_reason = reason

    def read_shape(self) -> Optional[Shape]:
        """Current shape from the environment; falls back to the last known one."""
        try:
            shape = self._shape_source()
        except Exception as e:
            _get_logger().error(f"[HEARTBEAT] shape source failed: {e}")
            return self.last_shape
        if shape is None:
            return self.last_shape
        if not shape.is_valid():
            _get_logger().warning(f"[HEARTBEAT] ignoring non-finite shape {shape.to_dict()}")
            return self.last_shape
        return shape

    def _publish_reason(self, shape_changed: bool, now: float) -> Optional[str]:
        if shape_changed:
            return "shape"
        if self._heal_reason is not None:
            return self._heal_reason
        if self.last_publish_at is None or (now - self.last_publish_at) >= self._keepalive_sec:
            return "keepalive"
        return None

    def publish(self, view: Registry, own: WindowDescriptor, now: float) -> HeartbeatResult:
        """
        Read the shared registry, merge our descriptor in, write it back.

        Returns:
            HeartbeatResult with the merged view (published=False if the write failed)
        """
        own = own.touched(now)
        local = upsert(view, own)

        remote, removed = reap(self._store.read(), now, self._stale_after_sec, own.id)
        merged = merge(local, remote, own.id, now)

        ok = self._store.write(merged)
        if ok:
            self.last_publish_at = now
            self.publish_count += 1
            self._heal_reason = None
        else:
            self.request_publish("retry")
        return HeartbeatResult(view=merged, published=ok, reaped=tuple(removed))

    def tick(self, view: Registry, self_id: str, now: float) -> HeartbeatResult:
        """
        Run one heartbeat for the descriptor with self_id.

        Args:
            view: Current local snapshot (must contain self_id)
            self_id: Our own id
            now: Current time

        Returns:
            HeartbeatResult; shape_changed is set only for a local shape change
        """
        own = find(view, self_id)
        if own is None:
            # Local view lost our entry; never expected, heal anyway
            _get_logger().warning(f"[HEARTBEAT] own descriptor missing from local view id={self_id}")
            return HeartbeatResult(view=view, reason="missing")

        shape = self.read_shape()
        changed = shape is not None and shape != self.last_shape
        if changed:
            self.last_shape = shape
            own = own.with_shape(shape, now)
            view = upsert(view, own)

        reason = self._publish_reason(changed, now)
        if reason is None:
            return HeartbeatResult(view=view, shape_changed=shape if changed else None)

        result = self.publish(view, own, now)
        result.shape_changed = shape if changed else None
        result.reason = reason
        _get_logger().debug(
            f"[HEARTBEAT] id={self_id[:8]} reason={reason} published={result.published} "
            f"windows={len(result.view)}"
        )
        return result
