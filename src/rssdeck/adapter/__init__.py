"""Feed source module."""

from rssdeck.adapter.base import BaseFeedSource, FeedSource
from rssdeck.adapter.rss import RSSFeedSource

__all__ = [
    "BaseFeedSource",
    "FeedSource",
    "RSSFeedSource",
]
