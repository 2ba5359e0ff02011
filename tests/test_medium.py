"""Tests for the shared media and their change notifications.

Run with: python -m pytest tests/test_medium.py -v
"""

import os

import pytest

from winsync.world.medium import FileMedium, MemoryMedium


# ============================================================================
# MEMORY MEDIUM
# ============================================================================

class TestMemoryMedium:
    """In-process medium with per-context handles."""

    def test_handles_share_items(self):
        medium = MemoryMedium()
        a, b = medium.connect(), medium.connect()
        a.set_item("k", "v")
        assert b.get_item("k") == "v"
        assert medium.get_item("k") == "v"

    def test_writer_is_not_notified(self):
        medium = MemoryMedium()
        a, b = medium.connect(), medium.connect()
        seen_a, seen_b = [], []
        a.subscribe(seen_a.append)
        b.subscribe(seen_b.append)

        a.set_item("k", "v")

        assert seen_a == []
        assert seen_b == ["k"]

    def test_outside_write_notifies_everyone(self):
        medium = MemoryMedium()
        a, b = medium.connect(), medium.connect()
        seen = []
        a.subscribe(seen.append)
        b.subscribe(seen.append)

        medium.set_item("k", "v")

        assert seen == ["k", "k"]

    def test_remove_notifies_only_when_present(self):
        medium = MemoryMedium()
        a, b = medium.connect(), medium.connect()
        seen = []
        b.subscribe(seen.append)

        a.remove_item("missing")
        a.set_item("k", "v")
        a.remove_item("k")

        assert seen == ["k", "k"]
        assert b.get_item("k") is None

    def test_unsubscribe(self):
        medium = MemoryMedium()
        a, b = medium.connect(), medium.connect()
        seen = []
        unsubscribe = b.subscribe(seen.append)
        unsubscribe()
        a.set_item("k", "v")
        assert seen == []

    def test_notifications_can_be_dropped(self):
        medium = MemoryMedium()
        a, b = medium.connect(), medium.connect()
        seen = []
        b.subscribe(seen.append)
        medium.notifications_enabled = False
        a.set_item("k", "v")
        assert seen == []
        assert b.get_item("k") == "v"


# ============================================================================
# FILE MEDIUM
# ============================================================================

class TestFileMedium:
    """Directory-backed medium shared between processes."""

    def test_roundtrip(self, tmp_path):
        medium = FileMedium(str(tmp_path))
        assert medium.get_item("windows") is None
        medium.set_item("windows", "[1,2,3]")
        assert medium.get_item("windows") == "[1,2,3]"
        assert os.path.exists(tmp_path / "windows.json")
        assert medium.keys() == ["windows"]

    def test_no_temp_files_left_behind(self, tmp_path):
        medium = FileMedium(str(tmp_path))
        medium.set_item("windows", "[]")
        assert sorted(os.listdir(tmp_path)) == ["windows.json"]

    def test_remove(self, tmp_path):
        medium = FileMedium(str(tmp_path))
        medium.set_item("windows", "[]")
        medium.remove_item("windows")
        medium.remove_item("windows")
        assert medium.get_item("windows") is None

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
    def test_rejects_unsafe_keys(self, tmp_path, key):
        medium = FileMedium(str(tmp_path))
        with pytest.raises(ValueError):
            medium.set_item(key, "x")

    def test_pump_reports_other_process_writes(self, tmp_path):
        ours = FileMedium(str(tmp_path))
        theirs = FileMedium(str(tmp_path))
        seen = []
        ours.subscribe(seen.append)

        theirs.set_item("windows", "[]")
        ours.pump()

        assert seen == ["windows"]

    def test_pump_ignores_own_writes(self, tmp_path):
        ours = FileMedium(str(tmp_path))
        seen = []
        ours.subscribe(seen.append)

        ours.set_item("windows", "[]")
        ours.pump()

        assert seen == []

    def test_pump_reports_each_change_once(self, tmp_path):
        ours = FileMedium(str(tmp_path))
        theirs = FileMedium(str(tmp_path))
        seen = []
        ours.subscribe(seen.append)

        theirs.set_item("windows", "[]")
        ours.pump()
        ours.pump()

        assert seen == ["windows"]

    def test_pump_reports_removal(self, tmp_path):
        ours = FileMedium(str(tmp_path))
        theirs = FileMedium(str(tmp_path))
        theirs.set_item("windows_reset", "1")
        seen = []
        ours.subscribe(seen.append)

        theirs.remove_item("windows_reset")
        ours.pump()

        assert seen == ["windows_reset"]

    def test_existing_files_are_not_news_on_subscribe(self, tmp_path):
        FileMedium(str(tmp_path)).set_item("windows", "[]")
        ours = FileMedium(str(tmp_path))
        seen = []
        ours.subscribe(seen.append)
        ours.pump()
        assert seen == []
