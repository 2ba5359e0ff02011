"""
winsync.world.descriptor

Window descriptor model and its wire format.

A descriptor is one context's entry in the shared registry:
- id: opaque string, unique while any live descriptor holds it
- shape: screen-relative rectangle, written only by the owning context
- meta_data: caller-supplied JSON value, fixed at registration
- last_seen: epoch seconds of the owner's last heartbeat

Wire format (one entry of the JSON array stored in the shared medium):
    {"id": str, "shape": {"x", "y", "width", "height"}, "metaData": any, "lastSeen": float}

Descriptors are frozen; owners produce updated copies with dataclasses.replace().
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from winsync.world.errors import StoreCorruptionError

# Type aliases
Registry = Tuple["WindowDescriptor", ...]
WireRecord = Dict[str, Any]


@dataclass(frozen=True)
class Shape:
    """Window rectangle in the shared screen coordinate space."""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    @classmethod
    def from_rect(cls, rect: Sequence[float]) -> "Shape":
        """Build a shape from a [left, top, right, bottom] rect."""
        left, top, right, bottom = rect
        return cls(x=left, y=top, width=right - left, height=bottom - top)

    def center(self) -> Tuple[float, float]:
        return (self.x + self.width * 0.5, self.y + self.height * 0.5)

    def is_valid(self) -> bool:
        """True if every field is a finite number, i.e. the shape can go on the wire."""
        return all(_is_number(v) for v in (self.x, self.y, self.width, self.height))

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Any) -> "Shape":
        """
        Decode a wire shape.

        Accepts the short "w"/"h" spelling used by older writers.

        Raises:
            StoreCorruptionError: if the value is not a mapping of finite numbers
        """
        if not isinstance(data, dict):
            raise StoreCorruptionError(f"shape must be an object, got {type(data).__name__}")

        values = {}
        for name, alias in (("x", None), ("y", None), ("width", "w"), ("height", "h")):
            raw = data.get(name, data.get(alias) if alias else None)
            if not _is_number(raw):
                raise StoreCorruptionError(f"shape.{name} is not a number: {raw!r}")
            values[name] = raw
        return cls(**values)


@dataclass(frozen=True)
class WindowDescriptor:
    """One participating context's registry entry."""
    id: str
    shape: Shape = field(default_factory=Shape)
    meta_data: Any = None
    last_seen: Optional[float] = None

    def with_shape(self, shape: Shape, now: float) -> "WindowDescriptor":
        """Copy with a new shape and a fresh heartbeat stamp."""
        return replace(self, shape=shape, last_seen=now)

    def touched(self, now: float) -> "WindowDescriptor":
        """Copy with a fresh heartbeat stamp."""
        return replace(self, last_seen=now)

    def same_content(self, other: Optional["WindowDescriptor"]) -> bool:
        """Compare id, shape and metadata, ignoring heartbeat stamps."""
        if other is None:
            return False
        return (
            self.id == other.id
            and self.shape == other.shape
            and self.meta_data == other.meta_data
        )

    def to_dict(self) -> WireRecord:
        record: WireRecord = {
            "id": self.id,
            "shape": self.shape.to_dict(),
            "metaData": self.meta_data,
        }
        if self.last_seen is not None:
            record["lastSeen"] = self.last_seen
        return record

    @classmethod
    def from_dict(cls, data: Any) -> "WindowDescriptor":
        """
        Decode one wire record. Unknown keys are ignored.

        Raises:
            StoreCorruptionError: on a missing/invalid id, shape or lastSeen
        """
        if not isinstance(data, dict):
            raise StoreCorruptionError(f"registry entry must be an object, got {type(data).__name__}")

        # Older writers used numeric ids
        raw_id = data.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)) or raw_id == "":
            raise StoreCorruptionError(f"registry entry has invalid id: {raw_id!r}")

        last_seen = data.get("lastSeen")
        if last_seen is not None and not _is_number(last_seen):
            raise StoreCorruptionError(f"lastSeen is not a number: {last_seen!r}")

        return cls(
            id=str(raw_id),
            shape=Shape.from_dict(data.get("shape")),
            meta_data=data.get("metaData"),
            last_seen=last_seen,
        )


def registry_to_wire(registry: Sequence[WindowDescriptor]) -> List[WireRecord]:
    """Encode a registry as the JSON-ready array stored in the medium."""
    return [d.to_dict() for d in registry]


def registry_from_wire(data: Any) -> Registry:
    """
    Decode the JSON array stored in the medium.

    Raises:
        StoreCorruptionError: if the value is not an array of valid entries
            or if two entries share an id
    """
    if not isinstance(data, list):
        raise StoreCorruptionError(f"registry must be an array, got {type(data).__name__}")

    seen = set()
    result: List[WindowDescriptor] = []
    for entry in data:
        desc = WindowDescriptor.from_dict(entry)
        if desc.id in seen:
            raise StoreCorruptionError(f"duplicate id in registry: {desc.id}")
        seen.add(desc.id)
        result.append(desc)
    return tuple(result)


def ids_of(registry: Sequence[WindowDescriptor]) -> List[str]:
    return [d.id for d in registry]


def find(registry: Sequence[WindowDescriptor], window_id: str) -> Optional[WindowDescriptor]:
    """Get the descriptor with the given id, or None."""
    for d in registry:
        if d.id == window_id:
            return d
    return None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
