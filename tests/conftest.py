"""Shared fixtures for winsync tests: a controllable clock and simulated contexts."""

import pytest

from winsync.core.logger import init_logger
from winsync.world.descriptor import Shape
from winsync.world.medium import MemoryMedium
from winsync.world.window_manager import WindowManager


class FakeClock:
    """Manually advanced time source shared by simulated contexts."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class PinnableHandle:
    """
    Wraps a medium handle so the next N reads of one key return a fixed value.

    Used to simulate a context acting on a snapshot read before a peer's write.
    """

    def __init__(self, handle):
        self._handle = handle
        self._pinned_key = None
        self._pinned_value = None
        self._pinned_reads = 0

    def pin(self, key, value, reads=1):
        self._pinned_key = key
        self._pinned_value = value
        self._pinned_reads = reads

    def get_item(self, key):
        if key == self._pinned_key and self._pinned_reads > 0:
            self._pinned_reads -= 1
            return self._pinned_value
        return self._handle.get_item(key)

    def set_item(self, key, value):
        self._handle.set_item(key, value)

    def remove_item(self, key):
        self._handle.remove_item(key)

    def subscribe(self, listener):
        return self._handle.subscribe(listener)

    def pump(self):
        self._handle.pump()


class SimContext:
    """One simulated window: its own medium handle, shape and manager."""

    def __init__(self, medium, clock, shape=None, **kwargs):
        self.handle = PinnableHandle(medium.connect())
        self.shape = shape or Shape(0, 0, 400, 300)
        self.shape_events = []
        self.window_events = []
        self.resets = 0
        options = {
            "clock": clock,
            "heartbeat_interval_sec": 1.0,
            "stale_after_sec": 5.0,
            "poll_interval_sec": 0.5,
            "depart_on_exit": False,
        }
        options.update(kwargs)
        self.manager = WindowManager(self.handle, lambda: self.shape, **options)
        self.manager.set_win_shape_change_callback(self.shape_events.append)
        self.manager.set_win_change_callback(self.window_events.append)
        self.manager.set_reset_callback(self._on_reset)

    def _on_reset(self):
        self.resets += 1

    @property
    def id(self):
        return self.manager.get_this_window_id()

    def ids(self):
        return [w.id for w in self.manager.get_windows()]


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep test output readable."""
    init_logger("WARNING")
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def medium():
    return MemoryMedium()


@pytest.fixture
def make_context(medium, clock):
    """Factory for simulated contexts sharing one medium and clock."""
    def factory(shape=None, **kwargs):
        return SimContext(medium, clock, shape=shape, **kwargs)
    return factory
