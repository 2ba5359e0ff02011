"""Tests for the logger's level and quiet-mode filtering.

Run with: python -m pytest tests/test_logger.py -v
"""

from winsync.core import logger as logger_module
from winsync.core.config import Config
from winsync.core.logger import Logger, get_logger, init_logger, set_quiet_mode


class TestLogger:
    """Plain-output logger so capsys sees the lines."""

    def test_level_filter(self, capsys):
        log = Logger("WARNING", use_rich=False)
        log.info("hidden")
        log.warning("shown")
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "[WARNING ] shown" in out

    def test_quiet_mode_hides_tick_chatter(self, capsys):
        log = Logger("DEBUG", quiet_mode=True, use_rich=False)
        log.debug("[HEARTBEAT] keepalive id=abc")
        log.debug("[PEER] poll re-read")
        log.debug("[STORE] wrote 2 descriptors")
        log.info("[REGISTRY] active id=abc")
        out = capsys.readouterr().out
        assert "HEARTBEAT" not in out
        assert "PEER" not in out
        assert "STORE" not in out
        assert "[REGISTRY] active id=abc" in out

    def test_set_quiet_mode_on_global_logger(self):
        init_logger("DEBUG")
        set_quiet_mode(True)
        assert get_logger().quiet_mode
        set_quiet_mode(False)
        assert not get_logger().quiet_mode

    def test_get_logger_reads_environment(self, monkeypatch):
        monkeypatch.setattr(logger_module, "_global_logger", None)
        monkeypatch.setenv("WINSYNC_LOG_LEVEL", "error")
        monkeypatch.setenv("WINSYNC_QUIET_MODE", "1")
        log = get_logger()
        assert log.level == "ERROR"
        assert log.quiet_mode


class TestConfig:

    def test_liveness_ratio(self, monkeypatch):
        monkeypatch.setattr(Config, "HEARTBEAT_INTERVAL_SEC", 1.0)
        monkeypatch.setattr(Config, "STALE_AFTER_SEC", 5.0)
        assert Config.get_liveness_ratio() == 5.0

    def test_liveness_ratio_without_keepalive(self, monkeypatch):
        monkeypatch.setattr(Config, "HEARTBEAT_INTERVAL_SEC", 0.0)
        assert Config.get_liveness_ratio() == float("inf")
