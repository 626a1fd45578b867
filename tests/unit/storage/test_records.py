"""Tests for RecordStore and the store factory."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from rssdeck.core.exceptions import ConfigurationError, StoreError
from rssdeck.models import Entry, FeedRecord
from rssdeck.storage import (
    JsonFileStore,
    MemoryStore,
    RecordStore,
    SQLiteStore,
    create_store,
    detect_store_type,
    entry_key,
    feed_key,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def records(backend: MemoryStore) -> RecordStore:
    return RecordStore(backend)


# =============================================================================
# RecordStore
# =============================================================================


class TestRecordKeys:
    """Feed and entry records live under separate prefixes."""

    async def test_same_string_as_feed_and_entry(self, records: RecordStore, backend: MemoryStore) -> None:
        """A URL used as both feed URL and permalink does not collide."""
        url = "https://example.com/x"
        await records.put_feed(FeedRecord(url=url, title="Feed"))
        await records.put_entry(Entry(link=url, title="Entry"))

        assert set(backend.snapshot()) == {feed_key(url), entry_key(url)}
        assert (await records.get_feed(url)).title == "Feed"
        assert (await records.get_entry(url)).title == "Entry"


class TestFeedRecords:
    """Feed record round-trips."""

    async def test_put_get_feed(self, records: RecordStore) -> None:
        """Catalog order and metadata survive storage."""
        record = FeedRecord(url="u", title="T", link="https://site", catalog=["b", "a"])
        await records.put_feed(record)

        loaded = await records.get_feed("u")

        assert loaded == record

    async def test_missing_feed(self, records: RecordStore) -> None:
        """Unknown URLs load as None."""
        assert await records.get_feed("nope") is None

    async def test_feed_urls(self, records: RecordStore) -> None:
        """feed_urls lists stored feeds only."""
        await records.put_feed(FeedRecord(url="u1"))
        await records.put_feed(FeedRecord(url="u2"))
        await records.put_entry(Entry(link="a"))

        assert sorted(await records.feed_urls()) == ["u1", "u2"]

    async def test_delete_feed(self, records: RecordStore) -> None:
        """delete_feed reports whether the record existed."""
        await records.put_feed(FeedRecord(url="u"))

        assert await records.delete_feed("u") is True
        assert await records.delete_feed("u") is False

    async def test_invalid_feed_record_raises(self, backend: MemoryStore, records: RecordStore) -> None:
        """Corrupt stored data raises StoreError with the key."""
        await backend.set(feed_key("u"), {"catalog": "not-a-list"})

        with pytest.raises(StoreError) as exc_info:
            await records.get_feed("u")

        assert exc_info.value.key == "feed:u"


class TestEntryRecords:
    """Entry record round-trips."""

    async def test_put_get_entry_keeps_read(self, records: RecordStore) -> None:
        """The read flag is persisted."""
        await records.put_entry(Entry(link="a", title="A", read=True, feed="u"))

        loaded = await records.get_entry("a")

        assert loaded.read is True
        assert loaded.feed == "u"

    async def test_get_entries_returns_existing_only(self, records: RecordStore) -> None:
        """get_entries skips missing links and duplicates."""
        await records.put_entry(Entry(link="a"))
        await records.put_entry(Entry(link="b"))

        found = await records.get_entries(["a", "missing", "b", "a"])

        assert list(found) == ["a", "b"]

    async def test_delete_entry(self, records: RecordStore) -> None:
        """Entries can be removed."""
        await records.put_entry(Entry(link="a"))

        assert await records.delete_entry("a") is True
        assert await records.get_entry("a") is None

    async def test_put_entries_as_one_batch(
        self, backend: MemoryStore, records: RecordStore
    ) -> None:
        with patch.object(backend, "set_batch", wraps=backend.set_batch) as set_batch:
            count = await records.put_entries([Entry(link="a"), Entry(link="b", read=True)])

        assert count == 2
        set_batch.assert_called_once()
        assert (await records.get_entry("b")).read is True

    async def test_delete_entries_skips_absent(self, records: RecordStore) -> None:
        await records.put_entries([Entry(link="a"), Entry(link="b")])

        assert await records.delete_entries(["a", "gone"]) == 1
        assert list(await records.get_entries(["a", "b"])) == ["b"]

    async def test_empty_batches_do_not_touch_backend(
        self, backend: MemoryStore, records: RecordStore
    ) -> None:
        with patch.object(backend, "set_batch") as set_batch, patch.object(
            backend, "delete_batch"
        ) as delete_batch:
            assert await records.put_entries([]) == 0
            assert await records.delete_entries([]) == 0

        set_batch.assert_not_called()
        delete_batch.assert_not_called()

    async def test_invalid_entry_record_raises(self, backend: MemoryStore, records: RecordStore) -> None:
        """Entries without a link are rejected on load."""
        await backend.set(entry_key("a"), {"title": "no link"})

        with pytest.raises(StoreError):
            await records.get_entry("a")


# =============================================================================
# Factory
# =============================================================================


class TestDetectStoreType:
    """Connection string detection."""

    @pytest.mark.parametrize(
        ("connection_string", "expected"),
        [
            ("memory://", "memory"),
            ("sqlite:///data/feeds.db", "sqlite"),
            ("feeds.sqlite3", "sqlite"),
            ("json:///~/.rssdeck/store.json", "json"),
            ("store.json", "json"),
        ],
    )
    def test_detects(self, connection_string: str, expected: str) -> None:
        assert detect_store_type(connection_string) == expected

    def test_unknown_scheme(self) -> None:
        """Unrecognised strings raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            detect_store_type("postgresql://localhost/db")


class TestCreateStore:
    """Backend construction."""

    def test_memory(self) -> None:
        assert isinstance(create_store("memory://"), MemoryStore)

    def test_json_absolute_path(self, tmp_path: Path) -> None:
        store = create_store(f"json://{tmp_path}/store.json")

        assert isinstance(store, JsonFileStore)
        assert store.path == tmp_path / "store.json"

    def test_json_home_path(self) -> None:
        """'/~' expands to the home directory."""
        store = create_store("json:///~/.rssdeck/store.json")

        assert store.path == Path("~/.rssdeck/store.json").expanduser()

    def test_sqlite(self, tmp_path: Path) -> None:
        assert isinstance(create_store(f"sqlite://{tmp_path}/feeds.db"), SQLiteStore)

    def test_missing_path(self) -> None:
        """A scheme without a path is rejected."""
        with pytest.raises(ConfigurationError, match="No path"):
            create_store("json://")
