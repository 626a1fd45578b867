"""rssdeck configuration.

Application settings loaded from environment variables with RSSDECK_ prefix,
plus the feed-list sources the refresh coordinator reads at the start of
every pass.

Example:
    >>> from rssdeck.core.config import get_settings
    >>> settings = get_settings(log_level="DEBUG")
    >>> settings.log_level
    'DEBUG'
    >>> settings.refresh_interval
    3600
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rssdeck.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings.

    Loads from environment variables with RSSDECK_ prefix. ``feeds`` is read
    as a JSON list, e.g. ``RSSDECK_FEEDS='["https://example.com/feed.xml"]'``.

    Example:
        >>> from rssdeck.core.config import Settings
        >>> s = Settings(feeds=["https://example.com/feed.xml"])
        >>> s.feeds
        ['https://example.com/feed.xml']
        >>> s.max_concurrent_fetches
        4
    """

    model_config = SettingsConfigDict(
        env_prefix="RSSDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Feeds
    feeds: list[str] = Field(default_factory=list, description="Feed URLs in display order")
    feeds_file: Path | None = Field(
        default=None, description="JSON file holding the feed list (overrides feeds)"
    )
    refresh_interval: int = Field(default=3600, ge=1, description="Seconds between refreshes")

    # Storage
    store_url: str = Field(
        default="json:///~/.rssdeck/store.json",
        description="Store location: memory://, json:///path or sqlite:///path",
    )
    max_catalog_size: int | None = Field(
        default=None, ge=1, description="Keep at most this many entries per feed"
    )

    # Fetching
    request_timeout: float = Field(default=30.0, ge=1.0)
    user_agent: str = Field(default="rssdeck/0.1")
    max_concurrent_fetches: int = Field(default=4, ge=1, le=64)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: console or plain")


def get_settings(**overrides: Any) -> Settings:
    """Get settings with optional overrides.

    Example:
        >>> from rssdeck.core.config import get_settings
        >>> get_settings(request_timeout=5.0).request_timeout
        5.0
    """
    return Settings(**overrides)


def normalize_urls(urls: list[str]) -> list[str]:
    """Strip whitespace, drop blanks and repeats, keep order.

    Feed URLs are store keys, so a stray space would orphan the stored record.

    Example:
        >>> from rssdeck.core.config import normalize_urls
        >>> normalize_urls([" https://a/rss", "", "https://a/rss ", "https://b/rss"])
        ['https://a/rss', 'https://b/rss']
    """
    return list(dict.fromkeys(u.strip() for u in urls if u.strip()))


@runtime_checkable
class FeedListSource(Protocol):
    """Supplies the ordered list of feed URLs.

    Re-read on every refresh pass; implementations must not cache.
    """

    def feed_urls(self) -> list[str]:
        """Return feed URLs in display order."""
        ...


@runtime_checkable
class WritableFeedList(FeedListSource, Protocol):
    """Feed list that can be edited."""

    def add(self, url: str) -> bool:
        """Append url. Returns False if already listed."""
        ...

    def remove(self, url: str) -> bool:
        """Remove url. Returns False if it was not listed."""
        ...


class StaticFeedList:
    """Fixed in-memory feed list, mostly for tests.

    Example:
        >>> from rssdeck.core.config import StaticFeedList
        >>> feeds = StaticFeedList(["a", "b"])
        >>> feeds.add("c")
        True
        >>> feeds.remove("a")
        True
        >>> feeds.feed_urls()
        ['b', 'c']
    """

    def __init__(self, urls: list[str] | None = None) -> None:
        self._urls = normalize_urls(urls or [])

    def feed_urls(self) -> list[str]:
        return list(self._urls)

    def add(self, url: str) -> bool:
        url = url.strip()
        if url in self._urls:
            return False
        self._urls.append(url)
        return True

    def remove(self, url: str) -> bool:
        url = url.strip()
        if url not in self._urls:
            return False
        self._urls.remove(url)
        return True


class SettingsFeedList:
    """Feed list taken from `Settings.feeds`, re-loaded on each call.

    Example:
        >>> from rssdeck.core.config import Settings, SettingsFeedList
        >>> feeds = SettingsFeedList(lambda: Settings(feeds=["https://a/rss"]))
        >>> feeds.feed_urls()
        ['https://a/rss']
    """

    def __init__(self, settings_factory: Callable[[], Settings] = get_settings) -> None:
        self._settings_factory = settings_factory

    def feed_urls(self) -> list[str]:
        return normalize_urls(self._settings_factory().feeds)


class FileFeedList:
    """Feed list stored as a JSON array in a file.

    A missing file is an empty list. Writes go through a temporary file
    and a rename.

    Example:
        >>> import tempfile
        >>> from pathlib import Path
        >>> from rssdeck.core.config import FileFeedList
        >>> with tempfile.TemporaryDirectory() as tmpdir:
        ...     feeds = FileFeedList(Path(tmpdir) / "feeds.json")
        ...     _ = feeds.add("https://example.com/feed.xml")
        ...     feeds.feed_urls()
        ['https://example.com/feed.xml']
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def feed_urls(self) -> list[str]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Invalid feed list in {self._path}: {e}") from e
        if not isinstance(data, list) or not all(isinstance(u, str) for u in data):
            raise ConfigurationError(f"Feed list in {self._path} must be a JSON array of URLs")
        return normalize_urls(data)

    def add(self, url: str) -> bool:
        """Append a URL. Returns False if already present."""
        url = url.strip()
        urls = self.feed_urls()
        if url in urls:
            return False
        urls.append(url)
        self._write(urls)
        return True

    def remove(self, url: str) -> bool:
        """Remove a URL. Returns False if it was not listed."""
        url = url.strip()
        urls = self.feed_urls()
        if url not in urls:
            return False
        self._write([u for u in urls if u != url])
        return True

    def _write(self, urls: list[str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(urls, f, indent=2)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ConfigurationError(f"Cannot write feed list {self._path}: {e}") from e


def feed_list_from_settings(settings: Settings) -> FeedListSource:
    """Pick the feed-list source a Settings instance describes.

    Example:
        >>> from rssdeck.core.config import Settings, feed_list_from_settings
        >>> type(feed_list_from_settings(Settings())).__name__
        'SettingsFeedList'
    """
    if settings.feeds_file is not None:
        return FileFeedList(settings.feeds_file)
    return SettingsFeedList()
