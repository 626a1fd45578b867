"""Protocol definitions."""

from rssdeck.protocols.store import KeyValueStore

__all__ = ["KeyValueStore"]
