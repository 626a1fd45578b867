"""
rssdeck - Feed reader core with durable read state.

rssdeck fetches RSS/Atom feeds, merges every fetch into a per-entry
key-value store and hands back the merged state for display. It keeps
each article's read flag across refreshes, never stores an entry twice
and never runs two refreshes at once.

Key Features:
- Pure catalog merge (new entries written once, known entries untouched)
- Swappable stores (memory, JSON file, SQLite) behind get/set/delete
- Refresh coordinator with per-feed outcomes and partial-failure isolation

Quick Start:
    >>> from rssdeck import FeedDeck, MemoryStore, StaticFeedList
    >>> feeds = StaticFeedList(["https://example.com/feed.xml"])
    >>> async with FeedDeck(MemoryStore(), feeds=feeds) as deck:
    ...     report = await deck.refresh_all()
    ...     abstracts = await deck.abstracts("https://example.com/feed.xml")
"""

# Feed sources
from rssdeck.adapter.base import BaseFeedSource, FeedSource
from rssdeck.adapter.rss import RSSFeedSource

# Configuration
from rssdeck.core.config import (
    FeedListSource,
    FileFeedList,
    SettingsFeedList,
    Settings,
    StaticFeedList,
    WritableFeedList,
    get_settings,
)

# Orchestration
from rssdeck.core.coordinator import (
    FeedOutcome,
    OutcomeStatus,
    RefreshCoordinator,
    RefreshReport,
    RefreshState,
)
from rssdeck.core.deck import FeedDeck
from rssdeck.core.exceptions import ConfigurationError, FetchError, RssDeckError, StoreError
from rssdeck.core.logging import configure_logging

# Merge
from rssdeck.merger import MergeResult, merge

# Models
from rssdeck.models import Abstract, Entry, FeedRecord, FetchedFeed, RawEntry

# Stores
from rssdeck.protocols.store import KeyValueStore
from rssdeck.storage import (
    JsonFileStore,
    MemoryStore,
    RecordStore,
    SQLiteStore,
    create_store,
)

# Display
from rssdeck.view import ArticleRow, FeedRow, ViewProjector

__version__ = "0.1.0"

__all__ = [
    # Models
    "Abstract",
    "Entry",
    "FeedRecord",
    "FetchedFeed",
    "RawEntry",
    # Sources
    "BaseFeedSource",
    "FeedSource",
    "RSSFeedSource",
    # Stores
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "SQLiteStore",
    "RecordStore",
    "create_store",
    # Merge
    "MergeResult",
    "merge",
    # Orchestration
    "FeedDeck",
    "RefreshCoordinator",
    "RefreshReport",
    "RefreshState",
    "FeedOutcome",
    "OutcomeStatus",
    # Display
    "ViewProjector",
    "FeedRow",
    "ArticleRow",
    # Configuration
    "Settings",
    "get_settings",
    "FeedListSource",
    "WritableFeedList",
    "StaticFeedList",
    "SettingsFeedList",
    "FileFeedList",
    "configure_logging",
    # Errors
    "RssDeckError",
    "FetchError",
    "StoreError",
    "ConfigurationError",
    # Version
    "__version__",
]
