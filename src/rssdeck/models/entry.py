"""Entry models - articles as fetched, stored and listed.

- `RawEntry`: one item parsed out of a feed document, before merging
- `Entry`: the persisted article, keyed by its permalink
- `Abstract`: the lightweight list projection of an Entry

Example:
    >>> from rssdeck.models.entry import RawEntry, Entry
    >>> raw = RawEntry(title="Hello", link="https://example.com/a", summary="Hi")
    >>> raw.identity
    'https://example.com/a'
    >>> entry = Entry.from_raw(raw, feed="https://example.com/feed.xml")
    >>> entry.read
    False
    >>> entry.abstract().title
    'Hello'
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from rssdeck.models.base import RssDeckModel


class RawEntry(RssDeckModel):
    """Item parsed from a feed document.

    Example:
        >>> from rssdeck.models.entry import RawEntry
        >>> RawEntry(title="No link", guid="urn:1").identity
        'urn:1'
        >>> RawEntry(title="Nothing").identity is None
        True
    """

    title: str = Field(default="", description="Item title")
    link: str | None = Field(default=None, description="Permalink of the article")
    guid: str | None = Field(default=None, description="RSS guid or Atom id")
    summary: str = Field(default="", description="Short description")
    content: str = Field(default="", description="Full body, when the feed carries one")
    published_at: datetime | None = Field(default=None, description="Publication time")

    @property
    def identity(self) -> str | None:
        """Permalink, or the guid when the item has no link."""
        return self.link or self.guid or None

    @property
    def body(self) -> str:
        """Full content if present, otherwise the summary."""
        return self.content or self.summary


class Abstract(RssDeckModel):
    """List projection of an Entry: no content."""

    link: str
    title: str = ""
    read: bool = False


class Entry(RssDeckModel):
    """A stored article.

    Content and read flag are authoritative once stored; a routine
    refresh never replaces them.
    """

    link: str = Field(..., min_length=1, description="Permalink, the store key")
    title: str = Field(default="")
    content: str = Field(default="")
    read: bool = Field(default=False)
    feed: str = Field(default="", description="URL of the owning feed")
    published_at: datetime | None = None

    @classmethod
    def from_raw(cls, raw: RawEntry, feed: str) -> Entry:
        """Create an unread Entry from a freshly fetched item.

        Raises:
            ValueError: If the item has no identity.
        """
        identity = raw.identity
        if not identity:
            raise ValueError("raw entry has neither a link nor a guid")
        return cls(
            link=identity,
            title=raw.title,
            content=raw.body,
            read=False,
            feed=feed,
            published_at=raw.published_at,
        )

    def abstract(self) -> Abstract:
        """Project to an Abstract."""
        return Abstract(link=self.link, title=self.title, read=self.read)

    def differs_from(self, raw: RawEntry) -> bool:
        """True if a fetched copy has a different title or body."""
        return self.title != raw.title or self.content != raw.body
