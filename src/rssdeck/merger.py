"""Catalog merging - reconcile a fresh fetch with stored state.

The merge is pure: it takes the fetched feed plus whatever the store
already holds for it and returns the new catalog, the abstracts to
display and the minimal set of writes. It performs no I/O.

Rules:
1. An entry's identity is its permalink (guid when there is no link).
   Items with neither are skipped; repeated identities keep the first.
2. A known identity keeps its stored Entry untouched, so read flags and
   stored content survive a republish.
3. An unknown identity becomes a new unread Entry and is written.
4. The catalog lists this fetch's identities in fetch order, then the
   previously catalogued identities that dropped out of the live feed.
   Nothing is pruned unless a catalog size limit is given.

Example:
    >>> from rssdeck.merger import merge
    >>> from rssdeck.models import FetchedFeed, RawEntry
    >>> fetched = FetchedFeed(
    ...     url="https://example.com/rss",
    ...     entries=[RawEntry(link="a", title="T1"), RawEntry(link="b", title="T2")],
    ... )
    >>> result = merge(fetched, existing_feed=None, existing_entries={})
    >>> result.feed.catalog
    ['a', 'b']
    >>> [a.title for a in result.abstracts]
    ['T1', 'T2']
    >>> len(result.new_entries)
    2
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from rssdeck.models.entry import Abstract, Entry
from rssdeck.models.feed import FeedRecord, FetchedFeed


@dataclass
class MergeResult:
    """Outcome of merging one fetch.

    Writes must be applied in order: `entry_writes`, then `feed`, then
    deletion of `pruned`. The catalog then only ever references entries
    that exist.

    Example:
        >>> from rssdeck.merger import MergeResult
        >>> from rssdeck.models import FeedRecord
        >>> MergeResult(feed=FeedRecord(url="u")).entry_writes
        []
    """

    feed: FeedRecord
    abstracts: list[Abstract] = field(default_factory=list)
    new_entries: list[Entry] = field(default_factory=list)
    updated_entries: list[Entry] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def entry_writes(self) -> list[Entry]:
        """Entries to write before the feed record."""
        return [*self.new_entries, *self.updated_entries]


def merge(
    fetched: FetchedFeed,
    existing_feed: FeedRecord | None,
    existing_entries: dict[str, Entry],
    *,
    update_content: bool = False,
    max_catalog_size: int | None = None,
) -> MergeResult:
    """Merge freshly fetched entries into a feed's stored catalog.

    Args:
        fetched: The parsed feed.
        existing_feed: Stored record for the feed, None on first fetch.
        existing_entries: Stored entries for every identity in the fetch
            and in the previous catalog that exists in the store.
        update_content: Replace title/content of known entries when the
            fetched copy differs. The read flag is always kept.
        max_catalog_size: Keep at most this many identities. Identities in
            the live fetch are never dropped; the overflow comes off the
            tail (oldest, no longer published) and is listed in `pruned`.

    Returns:
        MergeResult with the new feed record, abstracts and writes.
    """
    seen: list[str] = []
    seen_set: set[str] = set()
    new_entries: dict[str, Entry] = {}
    updated_entries: dict[str, Entry] = {}
    skipped = 0

    for raw in fetched.entries:
        identity = raw.identity
        if not identity or identity in seen_set:
            skipped += 1
            continue
        seen.append(identity)
        seen_set.add(identity)

        stored = existing_entries.get(identity)
        if stored is None:
            new_entries[identity] = Entry.from_raw(raw, feed=fetched.url)
        elif update_content and stored.differs_from(raw):
            updated_entries[identity] = stored.model_copy(
                update={
                    "title": raw.title,
                    "content": raw.body,
                    "published_at": raw.published_at or stored.published_at,
                }
            )

    previous = existing_feed.catalog if existing_feed is not None else []
    retained: list[str] = []
    for identity in previous:
        # Stale references (entry record gone) are dropped here.
        if identity in seen_set or identity not in existing_entries:
            continue
        if identity not in retained:
            retained.append(identity)
    catalog = seen + retained

    pruned: list[str] = []
    if max_catalog_size is not None and len(catalog) > max_catalog_size:
        keep = max(max_catalog_size, len(seen))
        catalog, pruned = catalog[:keep], catalog[keep:]

    entries = {**existing_entries, **new_entries, **updated_entries}
    abstracts = [entries[identity].abstract() for identity in catalog]

    feed = FeedRecord(
        url=fetched.url,
        title=fetched.title or (existing_feed.title if existing_feed else ""),
        link=fetched.link or (existing_feed.link if existing_feed else ""),
        catalog=catalog,
        updated_at=datetime.now(UTC),
    )

    return MergeResult(
        feed=feed,
        abstracts=abstracts,
        new_entries=list(new_entries.values()),
        updated_entries=list(updated_entries.values()),
        pruned=pruned,
        skipped=skipped,
    )


def project(feed: FeedRecord, entries: dict[str, Entry]) -> list[Abstract]:
    """Abstracts for a stored feed, skipping catalog entries that are gone.

    Example:
        >>> from rssdeck.merger import project
        >>> from rssdeck.models import Entry, FeedRecord
        >>> feed = FeedRecord(url="u", catalog=["a", "missing"])
        >>> [a.link for a in project(feed, {"a": Entry(link="a")})]
        ['a']
    """
    return [entries[link].abstract() for link in feed.catalog if link in entries]
