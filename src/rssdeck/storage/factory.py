"""Store factory - pick a backend from a connection string.

Usage:
    from rssdeck.storage import create_store

    store = create_store("memory://")                  # In-memory
    store = create_store("json:///~/.rssdeck/store.json")  # One JSON file
    store = create_store("sqlite:///data/rssdeck.db")   # SQLite
"""

from __future__ import annotations

from typing import Literal

from rssdeck.core.exceptions import ConfigurationError
from rssdeck.protocols.store import KeyValueStore
from rssdeck.storage.file import JsonFileStore
from rssdeck.storage.memory import MemoryStore
from rssdeck.storage.sqlite import SQLiteStore

StoreType = Literal["memory", "json", "sqlite"]


def detect_store_type(connection_string: str) -> StoreType:
    """Detect backend type from a connection string.

    Example:
        >>> from rssdeck.storage.factory import detect_store_type
        >>> detect_store_type("sqlite:///feeds.db")
        'sqlite'
        >>> detect_store_type("reader.json")
        'json'
    """
    lowered = connection_string.lower()
    if lowered.startswith("memory://"):
        return "memory"
    if lowered.startswith("sqlite://") or lowered.endswith((".db", ".sqlite", ".sqlite3")):
        return "sqlite"
    if lowered.startswith("json://") or lowered.endswith(".json"):
        return "json"
    raise ConfigurationError(f"Cannot determine store type from: {connection_string}")


def _path_part(connection_string: str) -> str:
    # scheme:///path -> path, scheme://relative -> relative
    if "://" not in connection_string:
        return connection_string
    rest = connection_string.split("://", 1)[1]
    if rest.startswith("/~"):
        return rest[1:]
    return rest


def create_store(connection_string: str) -> KeyValueStore:
    """Create a store backend from a connection string.

    Example:
        >>> from rssdeck.storage.factory import create_store
        >>> type(create_store("memory://")).__name__
        'MemoryStore'
        >>> create_store("sqlite:///tmp/rssdeck.db").__class__.__name__
        'SQLiteStore'
    """
    store_type = detect_store_type(connection_string)
    if store_type == "memory":
        return MemoryStore()
    path = _path_part(connection_string)
    if not path:
        raise ConfigurationError(f"No path in store URL: {connection_string}")
    if store_type == "sqlite":
        return SQLiteStore(path)
    return JsonFileStore(path)
