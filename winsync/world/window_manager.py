"""
winsync.world.window_manager

Registry Facade: the public contract offered to the presentation layer.

Usage:
    manager = WindowManager(medium, shape_provider=lambda: Shape(x, y, w, h))
    manager.set_win_shape_change_callback(on_shape)
    manager.set_win_change_callback(on_windows)
    manager.init({"foo": "bar"})

    # Later, once per frame in your render loop:
    manager.update()
    windows = manager.get_windows()

The manager owns no thread or timer; the caller's update() calls are the
only clock ticks. Nothing raises out of init() or update(): corruption,
identity collisions and failing callbacks are logged and recovered locally.
"""

from __future__ import annotations

import atexit
import time
from typing import Any, Callable, List, Optional

from winsync.core.config import Config
from winsync.core.state import RegistryState, RuntimeState
from winsync.world.descriptor import Registry, Shape, WindowDescriptor, find, ids_of
from winsync.world.errors import DuplicateIdentityError
from winsync.world.heartbeat import HeartbeatPublisher
from winsync.world.identity import IdentityAssigner
from winsync.world.peer_listener import PeerChangeListener
from winsync.world.reaper import reap
from winsync.world.registry_merge import diff_registries, merge, registry_changed, remove
from winsync.world.store import RegistryStore, is_encodable

# Lazy logger to avoid circular imports
_logger = None


def _get_logger():
    """Lazy-load logger."""
    global _logger
    if _logger is None:
        from winsync.core.logger import get_logger
        _logger = get_logger()
    return _logger


ShapeCallback = Callable[[Shape], Any]
WindowsCallback = Callable[[List[WindowDescriptor]], Any]


class WindowManager:
    """
    One context's membership in the shared window registry.

    State machine: UNINITIALIZED -> REGISTERING -> ACTIVE -> DEPARTED.
    DEPARTED is terminal; register again with a new WindowManager.
    """

    def __init__(
        self,
        medium: Any,
        shape_provider: Optional[Callable[[], Optional[Shape]]] = None,
        *,
        store_key: Optional[str] = None,
        reset_key: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        heartbeat_interval_sec: Optional[float] = None,
        stale_after_sec: Optional[float] = None,
        poll_interval_sec: Optional[float] = None,
        assigner: Optional[IdentityAssigner] = None,
        depart_on_exit: Optional[bool] = None,
    ):
        """
        Args:
            medium: Shared medium (MemoryMediumHandle, FileMedium, ...)
            shape_provider: Returns this window's current shape. If None,
                the shape is whatever was last passed to set_shape().
            store_key: Medium key holding the registry (default Config.STORE_KEY)
            reset_key: Medium key used for global resets (default Config.RESET_KEY)
            clock: Time source in epoch seconds, shared meaning across contexts
            heartbeat_interval_sec: Keep-alive period (default Config.HEARTBEAT_INTERVAL_SEC)
            stale_after_sec: Liveness window (default Config.STALE_AFTER_SEC)
            poll_interval_sec: Fallback re-read period (default Config.POLL_INTERVAL_SEC)
            assigner: Identity assigner (default: random uuid4 ids)
            depart_on_exit: Remove our entry at interpreter exit (default Config.DEPART_ON_EXIT)
        """
        self._medium = medium
        self._shape_provider = shape_provider
        self._clock = clock
        self._assigner = assigner or IdentityAssigner()
        self._depart_on_exit = Config.DEPART_ON_EXIT if depart_on_exit is None else depart_on_exit

        self.heartbeat_interval_sec = (
            Config.HEARTBEAT_INTERVAL_SEC if heartbeat_interval_sec is None else heartbeat_interval_sec
        )
        self.stale_after_sec = Config.STALE_AFTER_SEC if stale_after_sec is None else stale_after_sec
        self.poll_interval_sec = Config.POLL_INTERVAL_SEC if poll_interval_sec is None else poll_interval_sec

        if self.stale_after_sec <= self.heartbeat_interval_sec:
            _get_logger().warning(
                f"[REGISTRY] stale_after_sec={self.stale_after_sec} is not above "
                f"heartbeat_interval_sec={self.heartbeat_interval_sec}; live windows will be reaped"
            )

        self._store = RegistryStore(medium, store_key or Config.STORE_KEY)
        self._reset_key = reset_key or Config.RESET_KEY
        self._heartbeat = HeartbeatPublisher(
            self._store,
            self._current_shape,
            keepalive_sec=self.heartbeat_interval_sec,
            stale_after_sec=self.stale_after_sec,
        )
        self._listener = PeerChangeListener(
            medium,
            self._store,
            reset_key=self._reset_key,
            poll_interval_sec=self.poll_interval_sec,
        )

        self.runtime = RuntimeState()
        self._id: Optional[str] = None
        self._windows: Registry = ()
        self._pushed_shape: Optional[Shape] = None

        self._win_shape_change_callback: Optional[ShapeCallback] = None
        self._win_change_callback: Optional[WindowsCallback] = None
        self._reset_callback: Optional[Callable[[], Any]] = None

    # ========================================================================
    # Callback registration
    # ========================================================================

    def set_win_shape_change_callback(self, callback: Optional[ShapeCallback]) -> None:
        """Observe local shape changes. Replaces any previous callback."""
        self._win_shape_change_callback = callback

    def set_win_change_callback(self, callback: Optional[WindowsCallback]) -> None:
        """Observe registry membership/order/shape changes. Replaces any previous callback."""
        self._win_change_callback = callback

    def set_reset_callback(self, callback: Optional[Callable[[], Any]]) -> None:
        """Observe a global reset (this manager has departed when it fires)."""
        self._reset_callback = callback

    def _fire(self, name: str, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            _get_logger().error(f"[CALLBACK] {name} raised {type(e).__name__}: {e}")

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def state(self) -> RegistryState:
        return self.runtime.current_state

    def get_windows(self) -> List[WindowDescriptor]:
        """Current local snapshot in arrival order. Descriptors are immutable."""
        return list(self._windows)

    def get_this_window_id(self) -> Optional[str]:
        return self._id

    def get_this_window_data(self) -> Optional[WindowDescriptor]:
        if self._id is None:
            return None
        return find(self._windows, self._id)

    def get_window_index(self, window_id: Optional[str] = None) -> int:
        """Arrival index of a window (ours by default), or -1 if unknown."""
        target = self._id if window_id is None else window_id
        for i, desc in enumerate(self._windows):
            if desc.id == target:
                return i
        return -1

    def set_shape(self, shape: Shape) -> None:
        """Push the current shape for managers built without a shape_provider."""
        self._pushed_shape = shape

    def _current_shape(self) -> Optional[Shape]:
        if self._shape_provider is not None:
            return self._shape_provider()
        return self._pushed_shape

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def init(self, meta_data: Any = None) -> None:
        """
        Register this context and publish its first descriptor.

        Calling init() again on the same manager is ignored.
        """
        logger = _get_logger()
        if not self.runtime.is_in_state(RegistryState.UNINITIALIZED):
            logger.info(f"[REGISTRY] already initialized (state={self.state.value}), skipping init")
            return

        self.runtime.transition_to(RegistryState.REGISTERING)
        now = self._clock()

        if not is_encodable(meta_data):
            logger.error(
                f"[REGISTRY] meta_data of type {type(meta_data).__name__} is not JSON-encodable, registering without it"
            )
            meta_data = None

        remote, _ = reap(self._store.read(), now, self.stale_after_sec)
        taken = ids_of(remote)
        try:
            self._id = self._assigner.assign(taken)
        except DuplicateIdentityError as e:
            logger.error(f"[REGISTRY] identity assigner exhausted ({e}), using a random id")
            self._assigner = IdentityAssigner()
            self._id = self._assigner.assign(taken)

        shape = self._heartbeat.read_shape() or Shape()
        self._heartbeat.last_shape = shape
        own = WindowDescriptor(id=self._id, shape=shape, meta_data=meta_data, last_seen=now)
        self._windows = (own,)

        self._listener.attach()
        if self._depart_on_exit:
            atexit.register(self._depart_at_exit)

        logger.info(f"[REGISTRY] registering id={self._id} shape={shape.to_dict()}")
        self._try_activate(now)

    def _try_activate(self, now: float) -> None:
        """First publish; on success become ACTIVE and announce the initial view."""
        own = find(self._windows, self._id)

        # Re-check the id against the latest read right before the first publish
        remote = self._store.read()
        clash = find(remote, self._id)
        if clash is not None and not clash.same_content(own):
            old_id = self._id
            self._id = self._assigner.reassign(ids_of(remote))
            own = WindowDescriptor(id=self._id, shape=own.shape, meta_data=own.meta_data, last_seen=now)
            self._windows = (own,)
            _get_logger().debug(f"[REGISTRY] id collision on {old_id}, reassigned to {self._id}")

        result = self._heartbeat.publish(self._windows, own, now)
        if not result.published:
            _get_logger().warning(f"[REGISTRY] first publish failed for id={self._id}, will retry")
            return

        self.runtime.transition_to(RegistryState.ACTIVE)
        previous = self._windows
        self._windows = result.view
        _get_logger().info(f"[REGISTRY] active id={self._id} windows={len(self._windows)}")
        self._log_events(previous, self._windows)
        self._fire("win_change", self._win_change_callback, self.get_windows())

    def update(self) -> None:
        """Drive one heartbeat / merge / reap cycle. Call once per frame."""
        if self.runtime.is_in_state(RegistryState.REGISTERING):
            self._try_activate(self._clock())
            return
        if not self.runtime.is_in_state(RegistryState.ACTIVE):
            return

        now = self._clock()
        self.runtime.tick_count += 1
        previous = self._windows

        self._listener.pump()
        if self._listener.reset_pending:
            self._handle_reset()
            return

        beat = self._heartbeat.tick(self._windows, self._id, now)
        view = beat.view
        if beat.shape_changed is not None:
            self._fire("win_shape_change", self._win_shape_change_callback, beat.shape_changed)

        trigger = self._listener.due(now)
        if trigger is not None:
            refreshed = self._listener.refresh(view, self._id, now, trigger=trigger)
            view = refreshed.view
            if not refreshed.self_in_sync:
                self._heartbeat.request_publish("heal")
            if self._listener.reset_pending:
                self._handle_reset()
                return

        view, removed = reap(view, now, self.stale_after_sec, self._id)
        removed = list(beat.reaped) + removed
        if removed:
            _get_logger().info(f"[REAPER] removed stale windows {[r[:8] for r in removed]}")

        # Own entry is never allowed to disappear from our own view
        if find(view, self._id) is None:
            view = merge(previous, view, self._id, now)

        self._windows = view
        if registry_changed(previous, view):
            self._log_events(previous, view)
            self._fire("win_change", self._win_change_callback, self.get_windows())

    def depart(self, reason: str = "teardown") -> None:
        """
        Leave the registry: stop ticking and remove our entry (best effort).

        Peers that miss the write still drop us once our heartbeat goes stale.
        """
        if self.runtime.is_in_state(RegistryState.DEPARTED):
            return
        was_registered = self._id is not None
        self._stop(reason)
        if not was_registered:
            return

        remote = self._store.read()
        if find(remote, self._id) is not None:
            self._store.write(remove(remote, self._id))
        _get_logger().info(f"[REGISTRY] departed id={self._id} reason={reason}")

    def reset_all(self) -> None:
        """
        Clear the shared registry and tell every context to drop its registration.

        This manager departs too and fires its reset callback.
        """
        if self.runtime.is_in_state(RegistryState.DEPARTED):
            _get_logger().info("[REGISTRY] reset_all on a departed manager, ignoring")
            return
        self._store.clear()
        try:
            self._medium.set_item(self._reset_key, str(self._clock()))
        except OSError as e:
            _get_logger().error(f"[REGISTRY] reset broadcast failed: {e}")
        _get_logger().info("[REGISTRY] global reset broadcast")
        self._handle_reset()

    def _handle_reset(self) -> None:
        self._stop("reset")
        self._fire("reset", self._reset_callback)

    def _stop(self, reason: str) -> None:
        self.runtime.transition_to(RegistryState.DEPARTED, reason=reason)
        self._listener.detach()
        if self._depart_on_exit:
            atexit.unregister(self._depart_at_exit)

    def _depart_at_exit(self) -> None:
        try:
            self.depart(reason="exit")
        except Exception as e:
            _get_logger().warning(f"[REGISTRY] departure at exit failed: {e}")

    def _log_events(self, previous: Registry, current: Registry) -> None:
        logger = _get_logger()
        for ev in diff_registries(previous, current):
            logger.debug(f"[REGISTRY_EVT] type={ev['type']} id={ev['id'][:8]} shape={ev['to_shape']}")
