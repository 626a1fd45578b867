"""Store backends.

Quick Start:
    from rssdeck.storage import create_store, RecordStore

    records = RecordStore(create_store("sqlite:///feeds.db"))
    await records.initialize()
"""

from rssdeck.storage.factory import create_store, detect_store_type
from rssdeck.storage.file import JsonFileStore
from rssdeck.storage.memory import MemoryStore
from rssdeck.storage.records import RecordStore, entry_key, feed_key
from rssdeck.storage.sqlite import SQLiteStore

__all__ = [
    "create_store",
    "detect_store_type",
    "JsonFileStore",
    "MemoryStore",
    "RecordStore",
    "SQLiteStore",
    "entry_key",
    "feed_key",
]
