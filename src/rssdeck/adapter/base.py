"""Base feed source implementation.

Provides the FeedSource protocol and BaseFeedSource base class for
sources that fetch a feed URL and return its parsed entries.

Example:
    >>> from rssdeck.adapter.base import BaseFeedSource, FeedSource
    >>> hasattr(FeedSource, "fetch")
    True
    >>> hasattr(BaseFeedSource, "fetch")
    True
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from rssdeck.core.exceptions import FetchError
from rssdeck.models.feed import FetchedFeed

logger = logging.getLogger(__name__)


@runtime_checkable
class FeedSource(Protocol):
    """Protocol defining the feed source interface.

    ``fetch`` performs network I/O only and never touches the store.
    Failures are raised as `FetchError`; the caller decides whether to
    continue with other feeds.
    """

    async def fetch(self, url: str) -> FetchedFeed:
        """Fetch and parse one feed.

        Raises:
            FetchError: On network failure, bad status or unparseable body.
        """
        ...

    async def initialize(self) -> None:
        """Initialize the source (open connections, etc.)."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...


class BaseFeedSource(ABC):
    """Base class for feed sources.

    Subclasses implement `_fetch_document` (I/O) and `_parse` (pure).
    The base class wraps unexpected exceptions into `FetchError` and
    tracks per-URL fetch metadata.

    Example:
        >>> import asyncio
        >>> from rssdeck.models.feed import FetchedFeed
        >>> class StaticSource(BaseFeedSource):
        ...     async def _fetch_document(self, url):
        ...         return "doc"
        ...     def _parse(self, url, document):
        ...         return FetchedFeed(url=url, title=document)
        >>> asyncio.run(StaticSource().fetch("https://example.com/rss")).title
        'doc'
    """

    def __init__(self) -> None:
        self._initialized = False
        self._last_fetch_at: dict[str, datetime] = {}
        self._last_fetch_count: dict[str, int] = {}

    @property
    def info(self) -> dict[str, Any]:
        """Per-URL fetch metadata."""
        return {
            "last_fetch_at": dict(self._last_fetch_at),
            "last_fetch_count": dict(self._last_fetch_count),
        }

    async def initialize(self) -> None:
        """Initialize the source."""
        self._initialized = True

    async def close(self) -> None:
        """Clean up resources."""
        self._initialized = False

    async def __aenter__(self) -> BaseFeedSource:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def fetch(self, url: str) -> FetchedFeed:
        """Fetch and parse the feed at url.

        Raises:
            FetchError: If fetch or parse fails.
        """
        try:
            document = await self._fetch_document(url)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(url, f"Failed to fetch feed: {e}", kind="network", cause=e) from e

        try:
            fetched = self._parse(url, document)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(url, f"Failed to parse feed: {e}", kind="parse", cause=e) from e

        self._last_fetch_at[url] = datetime.now(UTC)
        self._last_fetch_count[url] = len(fetched.entries)
        logger.debug("Fetched %s: %d entries", url, len(fetched.entries))
        return fetched

    @abstractmethod
    async def _fetch_document(self, url: str) -> str | bytes:
        """Fetch the raw document for url."""
        ...

    @abstractmethod
    def _parse(self, url: str, document: str | bytes) -> FetchedFeed:
        """Parse a raw document into a FetchedFeed."""
        ...
