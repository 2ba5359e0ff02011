"""
winsync.world - Shared Window Registry

This package keeps every context's view of the open windows in sync through
a shared medium.

Modules:
- descriptor: Window descriptor model and wire format
- medium: In-memory and file-backed shared media with change notifications
- store: Registry blob read/write with corruption recovery
- identity: Per-context id assignment
- registry_merge: Pure merge and diff logic for snapshots (testable without a medium)
- reaper: Liveness timeout pruning
- heartbeat: Publishes this context's own descriptor
- peer_listener: Folds peer changes into the local view
- window_manager: Public facade driven by the caller's frame loop
"""

from winsync.world.descriptor import Shape, WindowDescriptor
from winsync.world.medium import FileMedium, MemoryMedium
from winsync.world.window_manager import WindowManager

__all__ = ["Shape", "WindowDescriptor", "FileMedium", "MemoryMedium", "WindowManager"]
