"""
winsync.world.store

Shared Store Adapter: reads and writes the whole registry as one JSON blob
under a single medium key.

Reads never raise. A missing key, malformed JSON, or a structurally invalid
registry all read as an empty registry, so one corrupted write cannot wedge
every participating context. Writes are a single set_item call; there is no
cross-process locking, so concurrent writers race (last write wins).
"""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from winsync.world.descriptor import Registry, WindowDescriptor, registry_from_wire, registry_to_wire
from winsync.world.errors import StoreCorruptionError

# Lazy logger to avoid circular imports
_logger = None


def _get_logger():
    """Lazy-load logger."""
    global _logger
    if _logger is None:
        from winsync.core.logger import get_logger
        _logger = get_logger()
    return _logger


def decode_registry(blob: Optional[str]) -> Registry:
    """
    Decode a stored blob.

    Raises:
        StoreCorruptionError: if the blob is not a valid registry
    """
    if blob is None or blob == "":
        return ()
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise StoreCorruptionError(f"invalid JSON: {e}") from e
    return registry_from_wire(data)


def encode_registry(registry: Sequence[WindowDescriptor]) -> str:
    # Readers reject NaN/Infinity
    return json.dumps(registry_to_wire(registry), separators=(",", ":"), allow_nan=False)


def is_encodable(value: Any) -> bool:
    """True if value survives the wire encoding (plain JSON, finite numbers)."""
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return False
    return True


class RegistryStore:
    """Registry-level view of one key in a shared medium."""

    def __init__(self, medium: Any, key: str):
        self._medium = medium
        self.key = key
        self.corruption_count = 0
        self.write_failures = 0

    def read(self) -> Registry:
        """Read the shared registry, substituting an empty one on corruption."""
        logger = _get_logger()
        try:
            blob = self._medium.get_item(self.key)
        except UnicodeDecodeError as e:
            self.corruption_count += 1
            logger.warning(f"[STORE] undecodable bytes under key={self.key}, treating as empty: {e}")
            return ()
        except OSError as e:
            logger.warning(f"[STORE] read failed key={self.key}: {e}")
            return ()

        try:
            return decode_registry(blob)
        except StoreCorruptionError as e:
            self.corruption_count += 1
            logger.warning(f"[STORE] corrupted registry under key={self.key}, treating as empty: {e}")
            return ()

    def write(self, registry: Sequence[WindowDescriptor]) -> bool:
        """
        Write the full registry.

        Returns:
            True if the medium accepted the write
        """
        try:
            blob = encode_registry(registry)
            self._medium.set_item(self.key, blob)
        except (OSError, TypeError, ValueError) as e:
            self.write_failures += 1
            _get_logger().error(f"[STORE] write failed key={self.key}: {e}")
            return False
        _get_logger().debug(f"[STORE] wrote key={self.key} windows={len(registry)}")
        return True

    def clear(self) -> None:
        """Drop the registry key entirely."""
        try:
            self._medium.remove_item(self.key)
        except OSError as e:
            _get_logger().error(f"[STORE] clear failed key={self.key}: {e}")
