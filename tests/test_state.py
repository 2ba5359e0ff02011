"""Tests for the registration state machine.

Run with: python -m pytest tests/test_state.py -v
"""

from winsync.core.state import RegistryState, RuntimeState


class TestRuntimeState:
    """UNINITIALIZED -> REGISTERING -> ACTIVE -> DEPARTED."""

    def test_starts_uninitialized(self):
        assert RuntimeState().is_in_state(RegistryState.UNINITIALIZED)

    def test_happy_path(self):
        state = RuntimeState()
        assert state.transition_to(RegistryState.REGISTERING)
        assert state.transition_to(RegistryState.ACTIVE)
        assert state.registered_at > 0
        assert state.transition_to(RegistryState.DEPARTED, reason="teardown")
        assert state.departure_reason == "teardown"
        assert state.departed_at > 0

    def test_cannot_skip_registration(self):
        state = RuntimeState()
        assert not state.transition_to(RegistryState.ACTIVE)
        assert state.is_in_state(RegistryState.UNINITIALIZED)

    def test_departed_is_terminal(self):
        state = RuntimeState()
        state.transition_to(RegistryState.DEPARTED)
        for target in RegistryState:
            assert not state.transition_to(target)
        assert state.is_in_state(RegistryState.DEPARTED)

    def test_time_in_state(self):
        state = RuntimeState()
        assert state.get_time_in_current_state() >= 0.0
