"""RSS/Atom feed source implementation.

Fetches feeds over HTTP with httpx and parses RSS 2.0, RSS 1.0 (RDF) and
Atom documents into `FetchedFeed` objects.

Example:
    >>> from rssdeck.adapter.rss import RSSFeedSource
    >>> source = RSSFeedSource(timeout=10.0)
    >>> source.timeout
    10.0
    >>> # fetched = await source.fetch("https://example.com/feed.xml")
"""

from __future__ import annotations

import contextlib
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx

from rssdeck.adapter.base import BaseFeedSource
from rssdeck.core.exceptions import FetchError
from rssdeck.models.entry import RawEntry
from rssdeck.models.feed import FetchedFeed

ATOM_NS = "http://www.w3.org/2005/Atom"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RSS1_NS = "http://purl.org/rss/1.0/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"


def _text(elem: ET.Element | None) -> str:
    """Text of an element; inline XHTML children are serialized."""
    if elem is None:
        return ""
    if len(elem):
        parts = [elem.text or ""]
        parts.extend(ET.tostring(child, encoding="unicode") for child in elem)
        return "".join(parts).strip()
    return (elem.text or "").strip()


def _parse_rfc822(value: str) -> datetime | None:
    with contextlib.suppress(ValueError, TypeError, IndexError):
        parsed = parsedate_to_datetime(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _parse_iso(value: str) -> datetime | None:
    with contextlib.suppress(ValueError):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


class RSSFeedSource(BaseFeedSource):
    """Feed source for RSS and Atom feeds.

    One `httpx.AsyncClient` is shared by all fetches and created lazily;
    use ``async with`` (or initialize()/close()) to control its lifetime.
    No retries: a failed fetch is reported and retried on the next pass.

    Args:
        timeout: Request timeout in seconds (default: 30.0).
        user_agent: User-Agent header value.
        headers: Extra HTTP headers.
        client: Pre-built client (tests pass one with a MockTransport).

    Example:
        >>> from rssdeck.adapter.rss import RSSFeedSource
        >>> source = RSSFeedSource(user_agent="MyReader/1.0")
        >>> source.headers["User-Agent"]
        'MyReader/1.0'
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: str = "rssdeck/0.1",
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
            **(headers or {}),
        }
        self._client = client
        self._owns_client = client is None

    async def initialize(self) -> None:
        await self._ensure_client()
        await super().initialize()

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
        await super().close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def _fetch_document(self, url: str) -> bytes:
        """GET the feed document.

        Raises:
            FetchError: ``status`` for non-2xx responses, ``network`` for
                transport failures and timeouts.
        """
        client = await self._ensure_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(url, f"HTTP {status}", kind="status", status_code=status, cause=e) from e
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Request timeout: {e}", kind="network", cause=e) from e
        except httpx.RequestError as e:
            raise FetchError(url, f"Request failed: {e}", kind="network", cause=e) from e
        return response.content

    def _parse(self, url: str, document: str | bytes) -> FetchedFeed:
        """Parse an RSS or Atom document.

        Raises:
            FetchError: ``parse`` if the body is not well-formed XML or not
                a recognized feed format.
        """
        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            raise FetchError(url, f"Failed to parse feed XML: {e}", kind="parse", cause=e) from e

        if root.tag in (f"{{{ATOM_NS}}}feed", "feed"):
            return self._parse_atom(url, root)
        if root.tag == f"{{{RDF_NS}}}RDF":
            return self._parse_rdf(url, root)
        if root.tag == "rss":
            return self._parse_rss(url, root)
        raise FetchError(url, f"Unrecognized feed format: <{root.tag}>", kind="parse")

    # --- RSS 2.0 ---

    def _parse_rss(self, url: str, root: ET.Element) -> FetchedFeed:
        channel = root.find("channel")
        if channel is None:
            raise FetchError(url, "RSS document has no <channel>", kind="parse")
        return FetchedFeed(
            url=url,
            title=_text(channel.find("title")),
            link=_text(channel.find("link")),
            entries=[self._parse_rss_item(item) for item in channel.findall("item")],
        )

    def _parse_rss_item(self, item: ET.Element) -> RawEntry:
        guid_elem = item.find("guid")
        guid = _text(guid_elem) or None
        link = _text(item.find("link")) or None
        if link is None and guid and guid_elem is not None:
            if guid_elem.get("isPermaLink", "true").lower() != "false":
                link = guid

        published_at = None
        pubdate = _text(item.find("pubDate"))
        if pubdate:
            published_at = _parse_rfc822(pubdate)
        if published_at is None:
            dc_date = _text(item.find(f"{{{DC_NS}}}date"))
            if dc_date:
                published_at = _parse_iso(dc_date)

        return RawEntry(
            title=_text(item.find("title")),
            link=link,
            guid=guid,
            summary=_text(item.find("description")),
            content=_text(item.find(f"{{{CONTENT_NS}}}encoded")),
            published_at=published_at,
        )

    # --- RSS 1.0 ---

    def _parse_rdf(self, url: str, root: ET.Element) -> FetchedFeed:
        channel = root.find(f"{{{RSS1_NS}}}channel")
        entries = []
        for item in root.findall(f"{{{RSS1_NS}}}item"):
            dc_date = _text(item.find(f"{{{DC_NS}}}date"))
            entries.append(
                RawEntry(
                    title=_text(item.find(f"{{{RSS1_NS}}}title")),
                    link=_text(item.find(f"{{{RSS1_NS}}}link")) or None,
                    guid=item.get(f"{{{RDF_NS}}}about") or None,
                    summary=_text(item.find(f"{{{RSS1_NS}}}description")),
                    content=_text(item.find(f"{{{CONTENT_NS}}}encoded")),
                    published_at=_parse_iso(dc_date) if dc_date else None,
                )
            )
        return FetchedFeed(
            url=url,
            title=_text(channel.find(f"{{{RSS1_NS}}}title")) if channel is not None else "",
            link=_text(channel.find(f"{{{RSS1_NS}}}link")) if channel is not None else "",
            entries=entries,
        )

    # --- Atom ---

    @staticmethod
    def _atom_find(elem: ET.Element, tag: str) -> ET.Element | None:
        found = elem.find(f"{{{ATOM_NS}}}{tag}")
        return found if found is not None else elem.find(tag)

    @staticmethod
    def _atom_link(elem: ET.Element) -> str:
        links = elem.findall(f"{{{ATOM_NS}}}link") or elem.findall("link")
        for link in links:
            if link.get("rel", "alternate") == "alternate" and link.get("href"):
                return link.get("href", "")
        for link in links:
            if link.get("href"):
                return link.get("href", "")
        return ""

    def _parse_atom(self, url: str, root: ET.Element) -> FetchedFeed:
        entries = root.findall(f"{{{ATOM_NS}}}entry") or root.findall("entry")
        return FetchedFeed(
            url=url,
            title=_text(self._atom_find(root, "title")),
            link=self._atom_link(root),
            entries=[self._parse_atom_entry(entry) for entry in entries],
        )

    def _parse_atom_entry(self, entry: ET.Element) -> RawEntry:
        published_at = None
        for tag in ("published", "updated"):
            value = _text(self._atom_find(entry, tag))
            if value:
                published_at = _parse_iso(value)
                if published_at is not None:
                    break

        return RawEntry(
            title=_text(self._atom_find(entry, "title")),
            link=self._atom_link(entry) or None,
            guid=_text(self._atom_find(entry, "id")) or None,
            summary=_text(self._atom_find(entry, "summary")),
            content=_text(self._atom_find(entry, "content")),
            published_at=published_at,
        )
