"""Tests for rssdeck.core.deck - FeedDeck entry point."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from rssdeck.adapter.rss import RSSFeedSource
from rssdeck.core.config import FileFeedList, Settings, SettingsFeedList, StaticFeedList
from rssdeck.core.coordinator import OutcomeStatus
from rssdeck.core.deck import FeedDeck
from rssdeck.models import Entry, FeedRecord, FetchedFeed, RawEntry
from rssdeck.storage import JsonFileStore, MemoryStore, SQLiteStore

FEED_URL = "https://example.com/feed.xml"

# =============================================================================
# Test doubles
# =============================================================================


class StubSource:
    """FeedSource serving one canned FetchedFeed per URL.

    With a gate, every fetch waits until the gate is set.
    """

    def __init__(
        self, results: dict[str, FetchedFeed], gate: asyncio.Event | None = None
    ) -> None:
        self.results = results
        self.gate = gate
        self.calls: list[str] = []
        self.initialized = False
        self.closed = False

    async def fetch(self, url: str) -> FetchedFeed:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        return self.results[url]

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True


def make_fetch(*links: str) -> FetchedFeed:
    return FetchedFeed(
        url=FEED_URL,
        title="Example",
        entries=[RawEntry(link=link, title=link.upper()) for link in links],
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
async def deck(store: MemoryStore):
    source = StubSource({FEED_URL: make_fetch("p1", "p2")})
    async with FeedDeck(store, feeds=StaticFeedList([FEED_URL]), source=source) as deck:
        yield deck


# =============================================================================
# Lifecycle
# =============================================================================


class TestFeedDeckLifecycle:
    """Construction and context management."""

    async def test_context_manager_opens_and_closes_source(self, store: MemoryStore) -> None:
        source = StubSource({})
        async with FeedDeck(store, feeds=StaticFeedList(), source=source):
            assert source.initialized

        assert source.closed

    def test_default_source_is_rss(self, store: MemoryStore) -> None:
        deck = FeedDeck(store, feeds=StaticFeedList())

        assert isinstance(deck._source, RSSFeedSource)

    def test_from_settings_memory(self) -> None:
        """Store URL, feeds and limits come from Settings."""
        settings = Settings(
            store_url="memory://",
            feeds=[FEED_URL],
            max_concurrent_fetches=2,
            max_catalog_size=50,
        )

        deck = FeedDeck.from_settings(settings)

        assert isinstance(deck.records.backend, MemoryStore)
        assert isinstance(deck.feeds, SettingsFeedList)
        assert deck.coordinator._max_concurrent_fetches == 2
        assert deck.coordinator._max_catalog_size == 50

    def test_from_settings_files(self, tmp_path: Path) -> None:
        """A feeds file and a sqlite URL select those backends."""
        settings = Settings(
            store_url=f"sqlite://{tmp_path}/deck.db",
            feeds_file=tmp_path / "feeds.json",
        )

        deck = FeedDeck.from_settings(settings)

        assert isinstance(deck.records.backend, SQLiteStore)
        assert isinstance(deck.feeds, FileFeedList)


# =============================================================================
# Reading and read state
# =============================================================================


class TestReading:
    """Accessors over stored state."""

    async def test_abstracts_after_refresh(self, deck: FeedDeck) -> None:
        await deck.refresh_all()

        abstracts = await deck.abstracts(FEED_URL)

        assert [(a.link, a.title, a.read) for a in abstracts] == [
            ("p1", "P1", False),
            ("p2", "P2", False),
        ]

    async def test_unknown_feed_has_no_abstracts(self, deck: FeedDeck) -> None:
        assert await deck.abstracts("https://nowhere.example/rss") == []

    async def test_feed_and_entry(self, deck: FeedDeck) -> None:
        await deck.refresh_all()

        feed = await deck.feed(FEED_URL)
        entry = await deck.entry("p1")

        assert feed.title == "Example"
        assert entry.feed == FEED_URL

    async def test_stored_feeds_in_configuration_order(self, store: MemoryStore) -> None:
        await StoreSeed(store).feed("u2").feed("u1").apply()
        deck = FeedDeck(store, feeds=StaticFeedList(["u1", "missing", "u2"]), source=StubSource({}))

        assert [f.url for f in await deck.stored_feeds()] == ["u1", "u2"]

    async def test_padded_configured_url_finds_stored_feed(self, store: MemoryStore) -> None:
        """Whitespace around a configured URL does not hide its record."""
        await StoreSeed(store).feed(FEED_URL, catalog=["p1"]).entry("p1").apply()
        source = StubSource({})
        deck = FeedDeck(store, feeds=StaticFeedList([f"  {FEED_URL}\t"]), source=source)

        report = await deck.refresh_all(force=False)

        assert source.calls == []
        assert report.get(FEED_URL).status is OutcomeStatus.CACHED
        assert [f.url for f in await deck.stored_feeds()] == [FEED_URL]


class TestReadState:
    """Read flags persist and survive refreshes."""

    async def test_set_read_persists(self, deck: FeedDeck) -> None:
        await deck.refresh_all()

        updated = await deck.set_read("p1")

        assert updated.read is True
        assert (await deck.entry("p1")).read is True

    async def test_set_read_survives_refresh(self, deck: FeedDeck) -> None:
        await deck.refresh_all()
        await deck.set_read("p2")

        report = await deck.refresh_all()

        assert [a.read for a in report.get(FEED_URL).abstracts] == [False, True]

    async def test_mark_unread(self, deck: FeedDeck) -> None:
        await deck.refresh_all()
        await deck.set_read("p1", True)

        await deck.set_read("p1", False)

        assert (await deck.entry("p1")).read is False

    async def test_set_read_unknown_link(self, deck: FeedDeck) -> None:
        assert await deck.set_read("nope") is None

    async def test_mark_all_read(self, deck: FeedDeck) -> None:
        await deck.refresh_all()
        await deck.set_read("p1")

        changed = await deck.mark_all_read(FEED_URL)

        assert changed == 1
        assert all(a.read for a in await deck.abstracts(FEED_URL))

    async def test_mark_all_read_unknown_feed(self, deck: FeedDeck) -> None:
        assert await deck.mark_all_read("https://nowhere.example/rss") == 0


# =============================================================================
# Feed list and removal
# =============================================================================


class TestRemoveFeed:
    """Removal cascade."""

    async def test_remove_deletes_catalog_entries_and_feed(self, store: MemoryStore) -> None:
        """Entries p1, p2 and the feed record are gone; twice is a no-op."""
        feeds = StaticFeedList([FEED_URL])
        deck = FeedDeck(store, feeds=feeds, source=StubSource({FEED_URL: make_fetch("p1", "p2")}))
        await deck.refresh_all()

        await deck.remove_feed(FEED_URL)

        assert await deck.entry("p1") is None
        assert await deck.entry("p2") is None
        assert await deck.feed(FEED_URL) is None
        assert len(store) == 0
        assert feeds.feed_urls() == []

        await deck.remove_feed(FEED_URL)
        assert len(store) == 0

    async def test_remove_with_entries_already_missing(self, store: MemoryStore) -> None:
        """Catalog references to absent entries are skipped."""
        await StoreSeed(store).feed(FEED_URL, catalog=["p1", "gone"]).entry("p1").apply()
        deck = FeedDeck(store, feeds=StaticFeedList(), source=StubSource({}))

        await deck.remove_feed(FEED_URL)

        assert len(store) == 0

    async def test_remove_leaves_other_feeds(self, store: MemoryStore) -> None:
        await StoreSeed(store).feed("other", catalog=["x"]).entry("x").feed(
            FEED_URL, catalog=["p1"]
        ).entry("p1").apply()
        deck = FeedDeck(store, feeds=StaticFeedList(), source=StubSource({}))

        await deck.remove_feed(FEED_URL)

        assert await deck.entry("x") is not None
        assert await deck.feed("other") is not None

    async def test_remove_during_refresh_not_written_back(self, store: MemoryStore) -> None:
        """A pass in flight when the feed is removed leaves nothing behind."""
        feeds = StaticFeedList([FEED_URL])
        gate = asyncio.Event()
        source = StubSource({FEED_URL: make_fetch("p1")}, gate=gate)
        deck = FeedDeck(store, feeds=feeds, source=source)

        task = asyncio.create_task(deck.refresh_all())
        await asyncio.sleep(0)
        await deck.remove_feed(FEED_URL)
        gate.set()
        report = await task

        assert source.calls == [FEED_URL]
        assert report.get(FEED_URL).status is OutcomeStatus.REMOVED
        assert feeds.feed_urls() == []
        assert store.snapshot() == {}

    async def test_readd_during_refresh_is_written(self, store: MemoryStore) -> None:
        feeds = StaticFeedList([FEED_URL])
        gate = asyncio.Event()
        source = StubSource({FEED_URL: make_fetch("p1")}, gate=gate)
        deck = FeedDeck(store, feeds=feeds, source=source)

        task = asyncio.create_task(deck.refresh_all())
        await asyncio.sleep(0)
        await deck.remove_feed(FEED_URL)
        await deck.add_feed(FEED_URL)
        gate.set()
        report = await task

        assert report.get(FEED_URL).status is OutcomeStatus.SUCCESS
        assert await deck.feed(FEED_URL) is not None

    async def test_remove_strips_url(self, store: MemoryStore) -> None:
        await StoreSeed(store).feed(FEED_URL, catalog=["p1"]).entry("p1").apply()
        feeds = StaticFeedList([FEED_URL])
        deck = FeedDeck(store, feeds=feeds, source=StubSource({}))

        await deck.remove_feed(f" {FEED_URL}\n")

        assert len(store) == 0
        assert feeds.feed_urls() == []


class TestOrphans:
    """Stored feeds that dropped out of the feed list."""

    async def test_orphaned_feeds(self, store: MemoryStore) -> None:
        await StoreSeed(store).feed(FEED_URL).feed("https://old.example/rss").apply()
        deck = FeedDeck(store, feeds=StaticFeedList([FEED_URL]), source=StubSource({}))

        assert await deck.orphaned_feeds() == ["https://old.example/rss"]

    async def test_prune_orphans_removes_feed_and_entries(self, store: MemoryStore) -> None:
        old = "https://old.example/rss"
        await StoreSeed(store).feed(FEED_URL, catalog=["p1"]).entry("p1").feed(
            old, catalog=["o1", "o2"]
        ).entry("o1").entry("o2").apply()
        deck = FeedDeck(store, feeds=StaticFeedList([FEED_URL]), source=StubSource({}))

        assert await deck.prune_orphans() == [old]

        assert sorted(store.snapshot()) == ["entry:p1", f"feed:{FEED_URL}"]
        assert await deck.orphaned_feeds() == []

    async def test_nothing_to_prune(self, deck: FeedDeck) -> None:
        await deck.refresh_all()

        assert await deck.prune_orphans() == []
        assert await deck.feed(FEED_URL) is not None


class TestAddFeed:
    """Adding feeds needs a writable list."""

    async def test_add_to_static_list(self, store: MemoryStore) -> None:
        feeds = StaticFeedList()
        deck = FeedDeck(store, feeds=feeds, source=StubSource({}))

        assert await deck.add_feed(FEED_URL) is True
        assert await deck.add_feed(FEED_URL) is False
        assert feeds.feed_urls() == [FEED_URL]

    async def test_add_to_file_list(self, store: MemoryStore, tmp_path: Path) -> None:
        path = tmp_path / "feeds.json"
        deck = FeedDeck(store, feeds=FileFeedList(path), source=StubSource({}))

        await deck.add_feed(FEED_URL)

        assert json.loads(path.read_text()) == [FEED_URL]

    async def test_read_only_list_rejected(self, store: MemoryStore) -> None:
        deck = FeedDeck(store, feeds=SettingsFeedList(lambda: Settings(feeds=[])), source=StubSource({}))

        with pytest.raises(TypeError, match="read-only"):
            await deck.add_feed(FEED_URL)


# =============================================================================
# Persistence across restarts
# =============================================================================


class TestRestart:
    """Stored state is authoritative after reopening."""

    async def test_json_store_survives_restart(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        source = StubSource({FEED_URL: make_fetch("p1")})
        async with FeedDeck(JsonFileStore(path), feeds=StaticFeedList([FEED_URL]), source=source) as deck:
            await deck.refresh_all()
            await deck.set_read("p1")

        async with FeedDeck(JsonFileStore(path), feeds=StaticFeedList([FEED_URL]), source=source) as deck:
            report = await deck.refresh_all(force=False)

        outcome = report.get(FEED_URL)
        assert outcome.status.value == "cached"
        assert [(a.link, a.read) for a in outcome.abstracts] == [("p1", True)]


# =============================================================================
# Helpers
# =============================================================================


class StoreSeed:
    """Builder that writes feed and entry records straight to a store."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store
        self._feeds: list[FeedRecord] = []
        self._entries: list[Entry] = []

    def feed(self, url: str, catalog: list[str] | None = None) -> StoreSeed:
        self._feeds.append(FeedRecord(url=url, catalog=catalog or []))
        return self

    def entry(self, link: str) -> StoreSeed:
        self._entries.append(Entry(link=link, title=link))
        return self

    async def apply(self) -> None:
        for entry in self._entries:
            await self._store.set(f"entry:{entry.link}", entry.model_dump(mode="json"))
        for feed in self._feeds:
            await self._store.set(f"feed:{feed.url}", feed.model_dump(mode="json"))
