"""Ambient configuration, logging and state for winsync."""
