"""Tests for the shared store adapter.

Corruption of the shared blob must never raise; it reads as an empty registry.

Run with: python -m pytest tests/test_store.py -v
"""

import json

import pytest

from winsync.world.descriptor import Shape, WindowDescriptor
from winsync.world.errors import StoreCorruptionError
from winsync.world.medium import MemoryMedium
from winsync.world.store import RegistryStore, decode_registry, encode_registry, is_encodable


class BrokenMedium:
    """Medium whose I/O always fails."""

    def get_item(self, key):
        raise OSError("disk gone")

    def set_item(self, key, value):
        raise OSError("disk full")

    def remove_item(self, key):
        raise OSError("disk gone")


@pytest.fixture
def store():
    return RegistryStore(MemoryMedium(), "windows")


@pytest.fixture
def registry():
    return (
        WindowDescriptor("a", Shape(0, 0, 100, 100), {"tag": "A"}, last_seen=10.0),
        WindowDescriptor("b", Shape(200, 0, 100, 100), {"tag": "B"}, last_seen=11.0),
    )


class TestDecode:
    """decode_registry() raises on bad input; the store catches it."""

    def test_none_is_empty(self):
        assert decode_registry(None) == ()

    def test_empty_string_is_empty(self):
        assert decode_registry("") == ()

    def test_invalid_json_raises(self):
        with pytest.raises(StoreCorruptionError):
            decode_registry("{not json")

    def test_encode_is_compact_json_array(self, registry):
        data = json.loads(encode_registry(registry))
        assert [e["id"] for e in data] == ["a", "b"]


class TestRegistryStore:
    """Read/write behaviour of RegistryStore."""

    def test_missing_key_reads_empty(self, store):
        assert store.read() == ()

    def test_write_then_read(self, store, registry):
        assert store.write(registry) is True
        assert store.read() == registry

    @pytest.mark.parametrize("blob", [
        "{not json",
        "42",
        '{"id": "a"}',
        '[{"id": "a"}]',
        '[{"id": "a", "shape": {"x": "left", "y": 0, "width": 1, "height": 1}}]',
    ])
    def test_corruption_reads_empty(self, blob):
        medium = MemoryMedium()
        medium.set_item("windows", blob)
        store = RegistryStore(medium, "windows")
        assert store.read() == ()
        assert store.corruption_count == 1

    def test_read_failure_reads_empty(self):
        store = RegistryStore(BrokenMedium(), "windows")
        assert store.read() == ()

    def test_write_failure_returns_false(self, registry):
        store = RegistryStore(BrokenMedium(), "windows")
        assert store.write(registry) is False
        assert store.write_failures == 1

    def test_unencodable_meta_data_is_a_failed_write(self, store):
        desc = WindowDescriptor("a", Shape(0, 0, 1, 1), {"tags": {"x", "y"}}, last_seen=1.0)
        assert store.write((desc,)) is False
        assert store.write_failures == 1
        assert store.read() == ()

    def test_non_finite_shape_is_a_failed_write(self, store):
        desc = WindowDescriptor("a", Shape(float("nan"), 0, 1, 1), None, last_seen=1.0)
        assert store.write((desc,)) is False
        assert store.read() == ()

    def test_undecodable_bytes_read_empty(self):
        class GarbledMedium:
            def get_item(self, key):
                return b"\xff\xfe garbage".decode("utf-8")

        store = RegistryStore(GarbledMedium(), "windows")
        assert store.read() == ()
        assert store.corruption_count == 1

    @pytest.mark.parametrize("value, expected", [
        ({"tag": "A", "n": [1, 2.5]}, True),
        (None, True),
        ({"tags": {"a", "b"}}, False),
        (object(), False),
        ({"x": float("inf")}, False),
    ])
    def test_is_encodable(self, value, expected):
        assert is_encodable(value) is expected

    def test_clear_removes_key(self, store, registry):
        store.write(registry)
        store.clear()
        assert store.read() == ()

    def test_clear_failure_does_not_raise(self):
        RegistryStore(BrokenMedium(), "windows").clear()
