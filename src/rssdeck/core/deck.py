"""FeedDeck - main entry point for a feed reader.

FeedDeck wires a record store, a feed source and a feed list into a
RefreshCoordinator and adds the operations a display layer needs between
refreshes: reading entries, toggling read flags and removing feeds.

Example:
    >>> import asyncio
    >>> from rssdeck.core.config import StaticFeedList
    >>> from rssdeck.core.deck import FeedDeck
    >>> from rssdeck.storage.memory import MemoryStore
    >>> async def example():
    ...     async with FeedDeck(MemoryStore(), feeds=StaticFeedList()) as deck:
    ...         return await deck.entry("https://example.com/missing")
    >>> asyncio.run(example()) is None
    True
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rssdeck.adapter.rss import RSSFeedSource
from rssdeck.core.config import (
    FeedListSource,
    Settings,
    WritableFeedList,
    feed_list_from_settings,
)
from rssdeck.core.coordinator import FeedOutcome, RefreshCoordinator, RefreshReport
from rssdeck.merger import project
from rssdeck.storage.factory import create_store
from rssdeck.storage.records import RecordStore

if TYPE_CHECKING:
    from rssdeck.adapter.base import FeedSource
    from rssdeck.models.entry import Abstract, Entry
    from rssdeck.models.feed import FeedRecord
    from rssdeck.protocols.store import KeyValueStore

logger = logging.getLogger(__name__)


class FeedDeck:
    """Feed reader core.

    Args:
        store: Key-value backend for feed and entry records.
        feeds: Feed-list source (re-read on every refresh).
        source: Feed source; defaults to an `RSSFeedSource`.
        max_concurrent_fetches: Upper bound on in-flight fetches.
        max_catalog_size: Optional per-feed retention limit.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        feeds: FeedListSource,
        source: FeedSource | None = None,
        max_concurrent_fetches: int = 4,
        max_catalog_size: int | None = None,
    ) -> None:
        self._records = RecordStore(store)
        self._feeds = feeds
        self._source = source if source is not None else RSSFeedSource()
        self._coordinator = RefreshCoordinator(
            self._records,
            self._source,
            feeds,
            max_concurrent_fetches=max_concurrent_fetches,
            max_catalog_size=max_catalog_size,
        )
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings) -> FeedDeck:
        """Build a deck from application settings.

        Example:
            >>> from rssdeck.core.config import Settings
            >>> from rssdeck.core.deck import FeedDeck
            >>> deck = FeedDeck.from_settings(Settings(store_url="memory://"))
            >>> deck.coordinator.is_refreshing
            False
        """
        return cls(
            create_store(settings.store_url),
            feeds=feed_list_from_settings(settings),
            source=RSSFeedSource(
                timeout=settings.request_timeout,
                user_agent=settings.user_agent,
            ),
            max_concurrent_fetches=settings.max_concurrent_fetches,
            max_catalog_size=settings.max_catalog_size,
        )

    @property
    def records(self) -> RecordStore:
        return self._records

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self._coordinator

    @property
    def feeds(self) -> FeedListSource:
        return self._feeds

    # --- Refresh ---

    async def refresh_all(self, force: bool = True) -> RefreshReport | None:
        """See `RefreshCoordinator.refresh_all`."""
        return await self._coordinator.refresh_all(force)

    async def refresh_one(
        self,
        url: str,
        force: bool = True,
        *,
        update_content: bool = False,
    ) -> FeedOutcome | None:
        """See `RefreshCoordinator.refresh_one`."""
        return await self._coordinator.refresh_one(url, force, update_content=update_content)

    # --- Reading ---

    async def feed(self, url: str) -> FeedRecord | None:
        """Stored feed record (site link, title, catalog)."""
        return await self._records.get_feed(url)

    async def entry(self, link: str) -> Entry | None:
        """Full stored entry for a permalink."""
        return await self._records.get_entry(link)

    async def abstracts(self, url: str) -> list[Abstract]:
        """Abstracts of a stored feed in catalog order; empty if unknown."""
        feed = await self._records.get_feed(url)
        if feed is None:
            return []
        return project(feed, await self._records.get_entries(feed.catalog))

    async def stored_feeds(self) -> list[FeedRecord]:
        """Stored records for the configured feeds, in configuration order."""
        records = []
        for url in self._feeds.feed_urls():
            feed = await self._records.get_feed(url)
            if feed is not None:
                records.append(feed)
        return records

    # --- Read state ---

    async def set_read(self, link: str, read: bool = True) -> Entry | None:
        """Persist an entry's read flag.

        Returns:
            The updated entry, or None if the permalink is unknown.
        """
        entry = await self._records.get_entry(link)
        if entry is None:
            return None
        if entry.read != read:
            entry = entry.model_copy(update={"read": read})
            await self._records.put_entry(entry)
        return entry

    async def mark_all_read(self, url: str) -> int:
        """Mark every entry of a feed read.

        Returns:
            Number of entries whose flag changed.
        """
        feed = await self._records.get_feed(url)
        if feed is None:
            return 0
        changed = 0
        for entry in (await self._records.get_entries(feed.catalog)).values():
            if not entry.read:
                await self._records.put_entry(entry.model_copy(update={"read": True}))
                changed += 1
        return changed

    # --- Feed list ---

    async def add_feed(self, url: str) -> bool:
        """Add a URL to a writable feed list.

        Raises:
            TypeError: If the feed list cannot be modified.
        """
        if not isinstance(self._feeds, WritableFeedList):
            raise TypeError(f"{type(self._feeds).__name__} is read-only")
        added = self._feeds.add(url)
        self._coordinator.clear_removed(url)
        if added:
            logger.info("Added feed %s", url)
        return added

    async def remove_feed(self, url: str) -> None:
        """Remove a feed and every entry in its catalog.

        Missing entries or an unknown feed are not errors, so calling this
        twice is harmless. The URL is also dropped from a writable feed list.
        A refresh pass that is running will not write the feed back.
        """
        url = url.strip()
        self._coordinator.mark_removed(url)
        if isinstance(self._feeds, WritableFeedList):
            self._feeds.remove(url)

        feed = await self._records.get_feed(url)
        if feed is not None:
            await self._records.delete_entries(feed.catalog)
        await self._records.delete_feed(url)
        logger.info(
            "Removed feed %s (%d entries)", url, len(feed.catalog) if feed is not None else 0
        )

    async def orphaned_feeds(self) -> list[str]:
        """URLs of stored feeds that are no longer in the feed list."""
        configured = set(self._feeds.feed_urls())
        return [url for url in await self._records.feed_urls() if url not in configured]

    async def prune_orphans(self) -> list[str]:
        """Remove every orphaned feed with its entries.

        Returns:
            The URLs removed.
        """
        orphans = await self.orphaned_feeds()
        for url in orphans:
            await self.remove_feed(url)
        return orphans

    # --- Lifecycle ---

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self._records.initialize()
        await self._source.initialize()
        self._initialized = True

    async def close(self) -> None:
        await self._source.close()
        await self._records.close()
        self._initialized = False

    async def __aenter__(self) -> FeedDeck:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
