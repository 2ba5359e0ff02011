"""
winsync - shared window registry for independent contexts.

Windows running as separate processes agree on who is open, where each one
sits on screen, and what metadata it carries, using nothing but a shared
key-value medium and its change notifications.
"""

__version__ = "0.1.0"
