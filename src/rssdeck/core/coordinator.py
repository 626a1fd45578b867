"""Refresh coordination - one pass at a time, per-feed outcomes.

The coordinator drives the fetch → merge → persist pipeline for all
configured feeds or for a single one. It owns the refresh state machine:

    IDLE --refresh_all/refresh_one--> REFRESHING --done--> IDLE

A request that arrives while REFRESHING returns None and does nothing.
Fetches for a pass fan out concurrently; merges and writes run one feed
at a time after all fetches have been gathered.

Example:
    >>> from rssdeck.core.coordinator import RefreshState
    >>> RefreshState.IDLE.value
    'idle'
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from rssdeck.core.exceptions import FetchError, StoreError
from rssdeck.merger import MergeResult, merge, project

if TYPE_CHECKING:
    from rssdeck.adapter.base import FeedSource
    from rssdeck.core.config import FeedListSource
    from rssdeck.models.entry import Abstract
    from rssdeck.models.feed import FeedRecord, FetchedFeed
    from rssdeck.storage.records import RecordStore

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    """Coordinator states."""

    IDLE = "idle"
    REFRESHING = "refreshing"


class OutcomeStatus(str, Enum):
    """Result of one feed within a pass.

    Example:
        >>> from rssdeck.core.coordinator import OutcomeStatus
        >>> [s.value for s in OutcomeStatus]
        ['success', 'cached', 'failed', 'removed']
    """

    SUCCESS = "success"  # fetched and merged
    CACHED = "cached"  # served from the store without fetching
    FAILED = "failed"  # fetch or store error; stored state untouched by this pass
    REMOVED = "removed"  # feed removed while the pass was running; nothing written


@dataclass
class FeedOutcome:
    """What happened to one feed during a pass.

    A failed fetch still carries the feed's stored record and abstracts
    (when it has any) so the display can keep showing them.

    Example:
        >>> from rssdeck.core.coordinator import FeedOutcome, OutcomeStatus
        >>> outcome = FeedOutcome(url="u", status=OutcomeStatus.FAILED, error="HTTP 500")
        >>> outcome.ok
        False
    """

    url: str
    status: OutcomeStatus
    feed: FeedRecord | None = None
    abstracts: list[Abstract] = field(default_factory=list)
    new: int = 0
    updated: int = 0
    pruned: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED

    @property
    def unread(self) -> int:
        return sum(1 for a in self.abstracts if not a.read)


@dataclass
class RefreshReport:
    """Per-feed outcomes of one refresh pass, in configuration order.

    Example:
        >>> from rssdeck.core.coordinator import FeedOutcome, OutcomeStatus, RefreshReport
        >>> report = RefreshReport(outcomes=[
        ...     FeedOutcome(url="a", status=OutcomeStatus.SUCCESS, new=2),
        ...     FeedOutcome(url="b", status=OutcomeStatus.FAILED, error="boom"),
        ... ])
        >>> [o.url for o in report.failed]
        ['b']
        >>> report.total_new
        2
    """

    outcomes: list[FeedOutcome] = field(default_factory=list)
    force: bool = True
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> list[FeedOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[FeedOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def total_new(self) -> int:
        return sum(o.new for o in self.outcomes)

    def get(self, url: str) -> FeedOutcome | None:
        """Outcome for url, if it was part of the pass."""
        for outcome in self.outcomes:
            if outcome.url == url:
                return outcome
        return None


class RefreshCoordinator:
    """Runs refresh passes against a record store.

    Args:
        records: Typed store for feed and entry records.
        source: Feed source used for network fetches.
        feeds: Feed-list source, read at the start of every pass.
        max_concurrent_fetches: Upper bound on in-flight fetches.
        max_catalog_size: Optional per-feed retention limit.
    """

    def __init__(
        self,
        records: RecordStore,
        source: FeedSource,
        feeds: FeedListSource,
        *,
        max_concurrent_fetches: int = 4,
        max_catalog_size: int | None = None,
    ) -> None:
        self._records = records
        self._source = source
        self._feeds = feeds
        self._max_concurrent_fetches = max_concurrent_fetches
        self._max_catalog_size = max_catalog_size
        self._state = RefreshState.IDLE
        self._removed: set[str] = set()

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._state is RefreshState.REFRESHING

    def mark_removed(self, url: str) -> None:
        """Record that url was removed; a running pass will not write it back."""
        if self._state is RefreshState.REFRESHING:
            self._removed.add(url)

    def clear_removed(self, url: str) -> None:
        """Forget a removal, e.g. when the feed is added again."""
        self._removed.discard(url)

    async def refresh_all(self, force: bool = True) -> RefreshReport | None:
        """Refresh every configured feed.

        Args:
            force: Always fetch. With False, feeds that already have a stored
                record are served from the store (used once at startup).

        Returns:
            The pass report, or None if a pass was already running.
        """
        if self._state is not RefreshState.IDLE:
            logger.debug("Refresh requested while refreshing; ignored")
            return None
        self._state = RefreshState.REFRESHING
        self._removed.clear()
        try:
            return await self._run(self._configured_urls(), force=force)
        finally:
            self._state = RefreshState.IDLE

    async def refresh_one(
        self,
        url: str,
        force: bool = True,
        *,
        update_content: bool = False,
    ) -> FeedOutcome | None:
        """Refresh a single feed.

        Args:
            url: Feed URL.
            force: See `refresh_all`.
            update_content: Let the fetched copy replace stored title/content
                of entries that were republished under the same permalink.

        Returns:
            The feed's outcome, or None if any pass was already running.
        """
        if self._state is not RefreshState.IDLE:
            logger.debug("Refresh of %s requested while refreshing; ignored", url)
            return None
        self._state = RefreshState.REFRESHING
        self._removed.clear()
        try:
            report = await self._run([url], force=force, update_content=update_content)
            return report.outcomes[0]
        finally:
            self._state = RefreshState.IDLE

    def _configured_urls(self) -> list[str]:
        urls: list[str] = []
        for url in self._feeds.feed_urls():
            if url not in urls:
                urls.append(url)
        return urls

    async def _run(
        self,
        urls: list[str],
        *,
        force: bool,
        update_content: bool = False,
    ) -> RefreshReport:
        start_time = time.perf_counter()
        report = RefreshReport(force=force)
        logger.info("Refreshing %d feed(s)%s", len(urls), "" if force else " (cached allowed)")

        outcomes: dict[str, FeedOutcome] = {}
        to_fetch: list[str] = []
        for url in urls:
            if not force:
                cached = await self._load_cached(url)
                if cached is not None:
                    outcomes[url] = cached
                    continue
            to_fetch.append(url)

        results = await self._fetch_many(to_fetch)

        # Sequential from here on: one feed's writes at a time.
        for url, result in zip(to_fetch, results, strict=True):
            outcomes[url] = await self._apply(url, result, update_content=update_content)

        for url in self._removed.intersection(outcomes):
            outcomes[url] = FeedOutcome(url=url, status=OutcomeStatus.REMOVED)
        report.outcomes = [outcomes[url] for url in urls]
        report.duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Refresh done in %.0f ms: %d ok, %d failed, %d new entries",
            report.duration_ms,
            len(report.succeeded),
            len(report.failed),
            report.total_new,
        )
        return report

    async def _fetch_many(self, urls: list[str]) -> list[FetchedFeed | FetchError]:
        semaphore = asyncio.Semaphore(self._max_concurrent_fetches)

        async def fetch_one(url: str) -> FetchedFeed | FetchError:
            async with semaphore:
                try:
                    return await self._source.fetch(url)
                except FetchError as e:
                    return e

        return list(await asyncio.gather(*(fetch_one(url) for url in urls)))

    async def _load_cached(self, url: str) -> FeedOutcome | None:
        try:
            feed = await self._records.get_feed(url)
            if feed is None:
                return None
            entries = await self._records.get_entries(feed.catalog)
        except StoreError as e:
            logger.warning("Cannot load %s from store: %s", url, e)
            return FeedOutcome(url=url, status=OutcomeStatus.FAILED, error=str(e))
        return FeedOutcome(
            url=url,
            status=OutcomeStatus.CACHED,
            feed=feed,
            abstracts=project(feed, entries),
        )

    async def _apply(
        self,
        url: str,
        result: FetchedFeed | FetchError,
        *,
        update_content: bool,
    ) -> FeedOutcome:
        if url in self._removed:
            logger.info("Skipping %s: removed during refresh", url)
            return FeedOutcome(url=url, status=OutcomeStatus.REMOVED)

        if isinstance(result, FetchError):
            logger.warning("Fetch failed for %s (%s): %s", url, result.kind, result)
            stored = await self._load_cached(url)
            if stored is None or not stored.ok:
                return FeedOutcome(url=url, status=OutcomeStatus.FAILED, error=str(result))
            # Keep showing what the store already holds.
            stored.status = OutcomeStatus.FAILED
            stored.error = str(result)
            return stored

        try:
            existing_feed = await self._records.get_feed(url)
            links = [raw.identity for raw in result.entries if raw.identity]
            if existing_feed is not None:
                links.extend(existing_feed.catalog)
            existing_entries = await self._records.get_entries(links)
            merged = merge(
                result,
                existing_feed,
                existing_entries,
                update_content=update_content,
                max_catalog_size=self._max_catalog_size,
            )
            if url in self._removed:
                return FeedOutcome(url=url, status=OutcomeStatus.REMOVED)
            await self._commit(merged)
        except StoreError as e:
            logger.warning("Store error while updating %s: %s", url, e)
            return FeedOutcome(url=url, status=OutcomeStatus.FAILED, error=str(e))

        logger.debug(
            "Merged %s: %d new, %d updated, %d pruned, %d skipped",
            url,
            len(merged.new_entries),
            len(merged.updated_entries),
            len(merged.pruned),
            merged.skipped,
        )
        return FeedOutcome(
            url=url,
            status=OutcomeStatus.SUCCESS,
            feed=merged.feed,
            abstracts=merged.abstracts,
            new=len(merged.new_entries),
            updated=len(merged.updated_entries),
            pruned=len(merged.pruned),
        )

    async def _commit(self, merged: MergeResult) -> None:
        # Entries first, then the catalog that references them, then
        # deletions of entries the new catalog no longer lists.
        await self._records.put_entries(merged.entry_writes)
        await self._records.put_feed(merged.feed)
        await self._records.delete_entries(merged.pruned)
