"""Data models."""

from rssdeck.models.base import RssDeckModel
from rssdeck.models.entry import Abstract, Entry, RawEntry
from rssdeck.models.feed import FeedRecord, FetchedFeed

__all__ = [
    "RssDeckModel",
    "Abstract",
    "Entry",
    "RawEntry",
    "FeedRecord",
    "FetchedFeed",
]
