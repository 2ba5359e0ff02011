"""
winsync.world.identity

Identity Assigner: one id per context lifetime.

Ids are 128 random bits (uuid4 hex). With tens of concurrent contexts the
collision probability is negligible, and two contexts registering in the same
instant cannot collide through a shared counter because there is none.
"""

from __future__ import annotations

import uuid
from typing import Callable, Iterable, Optional

from winsync.world.errors import DuplicateIdentityError

_MAX_ATTEMPTS = 16


def _random_id() -> str:
    return uuid.uuid4().hex


class IdentityAssigner:
    """Produces and caches this context's id."""

    def __init__(self, generator: Optional[Callable[[], str]] = None):
        self._generator = generator or _random_id
        self._id: Optional[str] = None

    @property
    def current(self) -> Optional[str]:
        return self._id

    def assign(self, taken: Iterable[str] = ()) -> str:
        """
        Get this context's id, drawing one on first call.

        Args:
            taken: Ids already held by other descriptors (checked on first draw only)
        """
        if self._id is None:
            self._id = self._draw(set(taken))
        return self._id

    def reassign(self, taken: Iterable[str]) -> str:
        """Discard the cached id and draw one not in taken."""
        self._id = self._draw(set(taken))
        return self._id

    def _draw(self, taken: set) -> str:
        for _ in range(_MAX_ATTEMPTS):
            candidate = str(self._generator())
            if candidate and candidate not in taken:
                return candidate
        raise DuplicateIdentityError(f"no free id after {_MAX_ATTEMPTS} attempts")
