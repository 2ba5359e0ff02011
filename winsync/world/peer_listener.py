"""
winsync.world.peer_listener

Peer Change Listener: folds other contexts' writes into the local view.

Two triggers mark the listener pending:
- a medium notification for the registry key (another context wrote it)
- the fallback poll, every POLL_INTERVAL_SEC, for lost or coalesced
  notifications

Notifications only set flags. The re-read and merge run inside the owning
context's update(), never from the notification itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from winsync.world.descriptor import Registry, find
from winsync.world.registry_merge import merge
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
class RefreshResult:
    """Outcome of one re-read of the shared registry."""
    view: Registry
    self_in_sync: bool
    remote_count: int = 0
    trigger: str = "poll"


class PeerChangeListener:
    """Watches the shared medium for peer changes and global resets."""

    def __init__(
        self,
        medium: Any,
        store: RegistryStore,
        reset_key: Optional[str],
        poll_interval_sec: float,
    ):
        self._medium = medium
        self._store = store
        self._reset_key = reset_key
        self._poll_interval_sec = poll_interval_sec

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending = False
        self._reset_pending = False
        self._reset_marker: Optional[str] = None
        self.last_refresh_at: Optional[float] = None
        self.notification_count = 0
        self.refresh_count = 0

    @property
    def reset_pending(self) -> bool:
        return self._reset_pending

    def attach(self) -> None:
        """Subscribe to medium notifications and remember the current reset marker."""
        if self._unsubscribe is not None:
            return
        self._reset_marker = self._read_reset_marker()
        subscribe = getattr(self._medium, "subscribe", None)
        if subscribe is None:
            _get_logger().info("[PEER] medium has no notifications, relying on polling")
            return
        self._unsubscribe = subscribe(self._on_medium_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def pump(self) -> None:
        """Let pull-based media deliver pending notifications."""
        pump = getattr(self._medium, "pump", None)
        if pump is None:
            return
        try:
            pump()
        except OSError as e:
            _get_logger().warning(f"[PEER] medium pump failed: {e}")

    def _on_medium_change(self, key: str) -> None:
        self.notification_count += 1
        if key == self._store.key:
            self._pending = True
        elif self._reset_key is not None and key == self._reset_key:
            self._reset_pending = True

    def due(self, now: float) -> Optional[str]:
        """Get the trigger that makes a refresh due, or None."""
        if self._pending:
            return "notify"
        if self.last_refresh_at is None or (now - self.last_refresh_at) >= self._poll_interval_sec:
            return "poll"
        return None

    def _read_reset_marker(self) -> Optional[str]:
        if self._reset_key is None:
            return None
        try:
            return self._medium.get_item(self._reset_key)
        except OSError as e:
            _get_logger().warning(f"[PEER] reset marker read failed: {e}")
            return self._reset_marker

    def _check_reset_marker(self) -> None:
        marker = self._read_reset_marker()
        if marker is not None and marker != self._reset_marker:
            self._reset_pending = True
        self._reset_marker = marker

    def refresh(self, view: Registry, self_id: str, now: float, trigger: str = "poll") -> RefreshResult:
        """
        Re-read the shared registry and merge it into view.

        Returns:
            RefreshResult; self_in_sync is False when the shared copy of our
            own descriptor is missing or differs from local state
        """
        self._pending = False
        self.last_refresh_at = now
        self.refresh_count += 1

        # Poll path doubles as the fallback for a missed reset notification
        if trigger == "poll":
            self._check_reset_marker()

        remote = self._store.read()
        merged = merge(view, remote, self_id, now)

        own = find(view, self_id)
        shared_own = find(remote, self_id)
        in_sync = own is not None and own.same_content(shared_own)

        _get_logger().debug(
            f"[PEER] refresh trigger={trigger} remote={len(remote)} merged={len(merged)} "
            f"self_in_sync={in_sync}"
        )
        return RefreshResult(view=merged, self_in_sync=in_sync, remote_count=len(remote), trigger=trigger)
