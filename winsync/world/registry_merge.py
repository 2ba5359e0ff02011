"""
winsync.world.registry_merge

Pure merge and diff logic for registry snapshots.

This module contains ONLY pure Python logic. It never touches the shared
medium or the clock (callers pass `now` in), so race scenarios are fully
reproducible from fixed inputs.

Merge rules:
- the remote read is authoritative for every id except our own
- our own descriptor always comes from local state and is never dropped
- order follows the remote array (arrival order); if we are missing from it
  we go at the end
- peers whose wire record lacks lastSeen inherit the local stamp while their
  content is unchanged, otherwise they are stamped `now`

Event Types (diff_registries):
- joined: id in next snapshot but not in prev
- left: id in prev snapshot but not in next
- moved: same id, shape changed
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from winsync.world.descriptor import Registry, WindowDescriptor, find

# Type aliases
SnapshotKey = Tuple[Tuple[str, Any], ...]
EventRecord = Dict[str, Any]


def merge(
    local: Sequence[WindowDescriptor],
    remote: Sequence[WindowDescriptor],
    self_id: Optional[str],
    now: float,
) -> Registry:
    """
    Merge a remote registry read into the local view.

    Args:
        local: Current local snapshot (contains our own descriptor)
        remote: Registry just read from the shared medium
        self_id: Our own id, or None before registration
        now: Current time, used to stamp peers without lastSeen

    Returns:
        The merged registry as a tuple
    """
    own = find(local, self_id) if self_id is not None else None
    local_by_id = {d.id: d for d in local}

    merged: List[WindowDescriptor] = []
    placed_self = False
    for desc in remote:
        if desc.id == self_id:
            if own is not None:
                merged.append(own)
                placed_self = True
            continue

        if desc.last_seen is None:
            prev = local_by_id.get(desc.id)
            if prev is not None and prev.last_seen is not None and prev.same_content(desc):
                desc = desc.touched(prev.last_seen)
            else:
                desc = desc.touched(now)
        merged.append(desc)

    if own is not None and not placed_self:
        merged.append(own)

    return tuple(merged)


def upsert(registry: Sequence[WindowDescriptor], desc: WindowDescriptor) -> Registry:
    """Replace the entry with desc.id in place, or append it."""
    result = list(registry)
    for i, existing in enumerate(result):
        if existing.id == desc.id:
            result[i] = desc
            return tuple(result)
    result.append(desc)
    return tuple(result)


def remove(registry: Sequence[WindowDescriptor], window_id: str) -> Registry:
    return tuple(d for d in registry if d.id != window_id)


def snapshot_key(registry: Sequence[WindowDescriptor]) -> SnapshotKey:
    """The part of a snapshot observers care about: ids, shapes and order."""
    return tuple((d.id, d.shape) for d in registry)


def registry_changed(prev: Sequence[WindowDescriptor], next_: Sequence[WindowDescriptor]) -> bool:
    return snapshot_key(prev) != snapshot_key(next_)


def diff_registries(
    prev: Sequence[WindowDescriptor],
    next_: Sequence[WindowDescriptor],
) -> List[EventRecord]:
    """
    Compute change events between two snapshots.

    Args:
        prev: Previous snapshot
        next_: Current snapshot

    Returns:
        List of event dicts with ts, type, id, from_shape, to_shape
    """
    events: List[EventRecord] = []
    ts = time.time()

    prev_by_id = {d.id: d for d in prev}
    next_by_id = {d.id: d for d in next_}

    # Keep snapshot order so events read in arrival order
    for desc in next_:
        if desc.id not in prev_by_id:
            events.append({
                "ts": ts,
                "type": "joined",
                "id": desc.id,
                "from_shape": None,
                "to_shape": desc.shape,
            })

    for desc in prev:
        if desc.id not in next_by_id:
            events.append({
                "ts": ts,
                "type": "left",
                "id": desc.id,
                "from_shape": desc.shape,
                "to_shape": None,
            })

    for desc in next_:
        before = prev_by_id.get(desc.id)
        if before is not None and before.shape != desc.shape:
            events.append({
                "ts": ts,
                "type": "moved",
                "id": desc.id,
                "from_shape": before.shape,
                "to_shape": desc.shape,
            })

    return events
