"""
winsync.world.errors

Error types used inside the registry. None of them escape the public
WindowManager surface: they are raised at the decode boundary and recovered
by the caller one level up.
"""


class StoreCorruptionError(ValueError):
    """The shared registry blob could not be decoded into a valid registry."""


class DuplicateIdentityError(RuntimeError):
    """An assigned id is already held by another live descriptor."""
