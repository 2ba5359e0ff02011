"""
State management for winsync.
Defines the per-context registration state machine.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import time


class RegistryState(Enum):
    """State machine states"""
    UNINITIALIZED = "UNINITIALIZED"
    REGISTERING = "REGISTERING"
    ACTIVE = "ACTIVE"
    DEPARTED = "DEPARTED"


# Allowed transitions. DEPARTED is terminal: a fresh WindowManager gets a fresh id.
_TRANSITIONS = {
    RegistryState.UNINITIALIZED: {RegistryState.REGISTERING, RegistryState.DEPARTED},
    RegistryState.REGISTERING: {RegistryState.ACTIVE, RegistryState.DEPARTED},
    RegistryState.ACTIVE: {RegistryState.ACTIVE, RegistryState.DEPARTED},
    RegistryState.DEPARTED: set(),
}


@dataclass
class RuntimeState:
    """Runtime state tracking"""
    current_state: RegistryState = RegistryState.UNINITIALIZED
    last_state_change: float = field(default_factory=time.time)
    registered_at: float = 0.0
    departed_at: float = 0.0
    tick_count: int = 0
    departure_reason: Optional[str] = None

    def can_transition_to(self, new_state: RegistryState) -> bool:
        """Check whether new_state is reachable from the current state"""
        return new_state in _TRANSITIONS[self.current_state]

    def transition_to(self, new_state: RegistryState, reason: Optional[str] = None) -> bool:
        """
        Transition to a new state.

        Returns:
            False (and leaves the state untouched) if the transition is not allowed
        """
        if not self.can_transition_to(new_state):
            return False

        self.current_state = new_state
        self.last_state_change = time.time()

        if new_state == RegistryState.ACTIVE and not self.registered_at:
            self.registered_at = self.last_state_change
            self.tick_count = 0
        elif new_state == RegistryState.DEPARTED:
            self.departed_at = self.last_state_change
            self.departure_reason = reason
        return True

    def is_in_state(self, state: RegistryState) -> bool:
        """Check if currently in given state"""
        return self.current_state == state

    def get_time_in_current_state(self) -> float:
        """Get time spent in current state (seconds)"""
        return time.time() - self.last_state_change
