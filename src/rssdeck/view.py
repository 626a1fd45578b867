"""View projection - rows for the feed list and the article list.

Read-only: turns feed records, abstracts and refresh reports into plain
rows a display layer can render. Never writes to the store.

Example:
    >>> from rssdeck.models import Abstract
    >>> from rssdeck.view import ViewProjector
    >>> rows = ViewProjector().article_rows([Abstract(link="a", title="T1")])
    >>> rows[0].label
    '● T1'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rssdeck.core.coordinator import OutcomeStatus

if TYPE_CHECKING:
    from rssdeck.core.coordinator import RefreshReport
    from rssdeck.models.entry import Abstract
    from rssdeck.models.feed import FeedRecord

UNREAD_MARK = "●"


@dataclass(frozen=True)
class FeedRow:
    """One line of the feed list."""

    url: str
    title: str
    site_link: str
    unread: int
    total: int
    failed: bool = False

    @property
    def label(self) -> str:
        return f"{self.title} ({self.unread})" if self.unread else self.title


@dataclass(frozen=True)
class ArticleRow:
    """One line of the article list."""

    link: str
    title: str
    read: bool

    @property
    def label(self) -> str:
        title = self.title or self.link
        return title if self.read else f"{UNREAD_MARK} {title}"


class ViewProjector:
    """Builds display rows from merged state."""

    def feed_row(
        self, feed: FeedRecord, abstracts: list[Abstract], *, failed: bool = False
    ) -> FeedRow:
        return FeedRow(
            url=feed.url,
            title=feed.display_title,
            site_link=feed.link,
            unread=sum(1 for a in abstracts if not a.read),
            total=len(abstracts),
            failed=failed,
        )

    def feed_rows(self, feeds: list[tuple[FeedRecord, list[Abstract]]]) -> list[FeedRow]:
        """Rows for (feed, abstracts) pairs in the given order."""
        return [self.feed_row(feed, abstracts) for feed, abstracts in feeds]

    def article_rows(self, abstracts: list[Abstract]) -> list[ArticleRow]:
        return [ArticleRow(link=a.link, title=a.title, read=a.read) for a in abstracts]

    def rows_from_report(self, report: RefreshReport) -> list[FeedRow]:
        """Feed rows for a refresh pass.

        A failed feed with no stored record yet is shown by URL. Feeds
        removed during the pass get no row.
        """
        rows = []
        for outcome in report.outcomes:
            if outcome.status is OutcomeStatus.REMOVED:
                continue
            if outcome.feed is not None:
                rows.append(self.feed_row(outcome.feed, outcome.abstracts, failed=not outcome.ok))
            else:
                rows.append(
                    FeedRow(
                        url=outcome.url,
                        title=outcome.url,
                        site_link="",
                        unread=0,
                        total=0,
                        failed=not outcome.ok,
                    )
                )
        return rows
