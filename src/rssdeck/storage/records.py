"""Typed access to feed and entry records over a key-value store.

Feed records and entry records share one key namespace. Keys are
prefixed (``feed:`` / ``entry:``) so a feed URL that is also some
article's permalink cannot collide.

Example:
    >>> import asyncio
    >>> from rssdeck.models import Entry
    >>> from rssdeck.storage.memory import MemoryStore
    >>> from rssdeck.storage.records import RecordStore
    >>> async def example():
    ...     records = RecordStore(MemoryStore())
    ...     await records.put_entry(Entry(link="https://example.com/a", title="A"))
    ...     entry = await records.get_entry("https://example.com/a")
    ...     return entry.title
    >>> asyncio.run(example())
    'A'
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from rssdeck.core.exceptions import StoreError
from rssdeck.models.entry import Entry
from rssdeck.models.feed import FeedRecord

if TYPE_CHECKING:
    from rssdeck.protocols.store import KeyValueStore

FEED_PREFIX = "feed:"
ENTRY_PREFIX = "entry:"


def feed_key(url: str) -> str:
    """Store key for a feed record.

    Example:
        >>> from rssdeck.storage.records import feed_key
        >>> feed_key("https://example.com/rss")
        'feed:https://example.com/rss'
    """
    return f"{FEED_PREFIX}{url}"


def entry_key(link: str) -> str:
    """Store key for an entry record."""
    return f"{ENTRY_PREFIX}{link}"


class RecordStore:
    """Feed/entry record helpers on top of a `KeyValueStore`.

    Records that fail validation when loaded raise `StoreError`.
    """

    def __init__(self, backend: KeyValueStore) -> None:
        self._backend = backend

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    async def initialize(self) -> None:
        await self._backend.initialize()

    async def close(self) -> None:
        await self._backend.close()

    # --- Feeds ---

    async def get_feed(self, url: str) -> FeedRecord | None:
        key = feed_key(url)
        data = await self._backend.get(key)
        if data is None:
            return None
        try:
            return FeedRecord.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid feed record for {url}", key=key, cause=e) from e

    async def put_feed(self, record: FeedRecord) -> None:
        await self._backend.set(feed_key(record.url), record.model_dump(mode="json"))

    async def delete_feed(self, url: str) -> bool:
        return await self._backend.delete(feed_key(url))

    async def feed_urls(self) -> list[str]:
        """URLs of all stored feed records."""
        keys = await self._backend.keys(FEED_PREFIX)
        return [k[len(FEED_PREFIX) :] for k in keys]

    # --- Entries ---

    async def get_entry(self, link: str) -> Entry | None:
        key = entry_key(link)
        data = await self._backend.get(key)
        if data is None:
            return None
        try:
            return Entry.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid entry record for {link}", key=key, cause=e) from e

    async def get_entries(self, links: list[str]) -> dict[str, Entry]:
        """Load the entries that exist among links, keyed by permalink."""
        found: dict[str, Entry] = {}
        for link in links:
            if link in found:
                continue
            entry = await self.get_entry(link)
            if entry is not None:
                found[link] = entry
        return found

    async def put_entry(self, entry: Entry) -> None:
        await self._backend.set(entry_key(entry.link), entry.model_dump(mode="json"))

    async def delete_entry(self, link: str) -> bool:
        return await self._backend.delete(entry_key(link))

    async def put_entries(self, entries: list[Entry]) -> int:
        """Write entries as one batch."""
        if not entries:
            return 0
        return await self._backend.set_batch(
            {entry_key(entry.link): entry.model_dump(mode="json") for entry in entries}
        )

    async def delete_entries(self, links: list[str]) -> int:
        """Delete entries as one batch; absent links are skipped."""
        if not links:
            return 0
        return await self._backend.delete_batch([entry_key(link) for link in links])
