"""
Configuration module for winsync.
Centralizes all settings with environment variable overrides.
"""
import os


class Config:
    """Central configuration for winsync"""

    # Shared medium keys
    STORE_KEY: str = os.environ.get("WINSYNC_STORE_KEY", "windows")
    # Writing any value under this key tells every context to drop its registration
    RESET_KEY: str = os.environ.get("WINSYNC_RESET_KEY", "windows_reset")

    # Directory shared by all contexts when using the file-backed medium
    STORE_DIR: str = os.environ.get("WINSYNC_STORE_DIR", os.path.join(os.path.expanduser("~"), ".winsync"))

    # Heartbeat settings
    # Keep-alive: re-publish own descriptor at least this often even when the shape is unchanged
    HEARTBEAT_INTERVAL_SEC: float = float(os.environ.get("WINSYNC_HEARTBEAT_INTERVAL_SEC", "1.0"))

    # Liveness window. Must stay comfortably above HEARTBEAT_INTERVAL_SEC (3-5x) to tolerate jitter.
    STALE_AFTER_SEC: float = float(os.environ.get("WINSYNC_STALE_AFTER_SEC", "5.0"))

    # Fallback re-read of the shared medium when change notifications are lost or coalesced
    POLL_INTERVAL_SEC: float = float(os.environ.get("WINSYNC_POLL_INTERVAL_SEC", "0.5"))

    # Demo frame cadence (run.py drives update() at this rate)
    FRAME_INTERVAL_SEC: float = float(os.environ.get("WINSYNC_FRAME_INTERVAL_SEC", str(1.0 / 30.0)))

    # Best-effort departure on interpreter exit
    DEPART_ON_EXIT: bool = os.environ.get("WINSYNC_DEPART_ON_EXIT", "true").lower() in ("true", "1", "yes")

    # Logging
    LOG_LEVEL: str = os.environ.get("WINSYNC_LOG_LEVEL", "INFO")

    # Quiet Mode - hides per-tick chatter like heartbeats and polls
    QUIET_MODE: bool = os.environ.get("WINSYNC_QUIET_MODE", "false").lower() in ("true", "1", "yes")

    @classmethod
    def get_liveness_ratio(cls) -> float:
        """Get how many keep-alive intervals fit in the liveness window"""
        if cls.HEARTBEAT_INTERVAL_SEC <= 0:
            return float("inf")
        return cls.STALE_AFTER_SEC / cls.HEARTBEAT_INTERVAL_SEC
