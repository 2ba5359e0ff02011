"""
winsync.world.reaper

Staleness Reaper: drops peers whose heartbeat is older than the liveness
window. Pure functions of (now, last_seen, threshold); the clock is always
passed in.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from winsync.world.descriptor import Registry, WindowDescriptor


def is_stale(now: float, last_seen: Optional[float], threshold: float) -> bool:
    """
    Check whether a heartbeat stamp has expired.

    A missing stamp is never stale here; merge() stamps unknown peers on
    first sight so they still age out.
    """
    if last_seen is None:
        return False
    return (now - last_seen) > threshold


def reap(
    registry: Sequence[WindowDescriptor],
    now: float,
    threshold: float,
    self_id: Optional[str] = None,
) -> Tuple[Registry, List[str]]:
    """
    Remove stale descriptors, never our own.

    Returns:
        (kept registry, removed ids)
    """
    kept: List[WindowDescriptor] = []
    removed: List[str] = []
    for desc in registry:
        if desc.id != self_id and is_stale(now, desc.last_seen, threshold):
            removed.append(desc.id)
        else:
            kept.append(desc)
    return tuple(kept), removed
