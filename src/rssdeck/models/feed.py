"""Feed models.

- `FetchedFeed`: what a FeedSource returns for one successful fetch
- `FeedRecord`: the persisted per-feed record holding the catalog

Example:
    >>> from rssdeck.models.feed import FeedRecord
    >>> record = FeedRecord(url="https://example.com/feed.xml", catalog=["a", "b"])
    >>> record.catalog
    ['a', 'b']
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import Field

from rssdeck.models.base import RssDeckModel
from rssdeck.models.entry import RawEntry


class FetchedFeed(RssDeckModel):
    """Parsed feed document.

    Example:
        >>> from rssdeck.models.feed import FetchedFeed
        >>> from rssdeck.models.entry import RawEntry
        >>> fetched = FetchedFeed(
        ...     url="https://example.com/feed.xml",
        ...     title="Example",
        ...     entries=[RawEntry(title="T1", link="a")],
        ... )
        >>> len(fetched.entries)
        1
    """

    url: str = Field(..., min_length=1)
    title: str = Field(default="", description="Feed title")
    link: str = Field(default="", description="Site link")
    entries: list[RawEntry] = Field(default_factory=list, description="Items in source order")


class FeedRecord(RssDeckModel):
    """Stored feed: metadata plus the ordered catalog of permalinks."""

    url: str = Field(..., min_length=1, description="Feed URL, the store key")
    title: str = Field(default="")
    link: str = Field(default="", description="Site link")
    catalog: list[str] = Field(default_factory=list, description="Known permalinks, newest first")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def display_title(self) -> str:
        """Title for list display, falling back to the URL."""
        return self.title or self.url
