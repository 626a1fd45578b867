"""CLI entry point."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rssdeck.core.config import Settings, get_settings
from rssdeck.core.coordinator import RefreshReport
from rssdeck.core.deck import FeedDeck
from rssdeck.core.exceptions import RssDeckError
from rssdeck.core.logging import configure_logging
from rssdeck.view import ViewProjector

app = typer.Typer(
    name="rssdeck",
    help="Feed reader that keeps read state across refreshes",
    no_args_is_help=True,
)
console = Console()
projector = ViewProjector()

T = TypeVar("T")


@app.callback()
def main(
    ctx: typer.Context,
    store_url: str | None = typer.Option(None, "--store", help="Store URL (overrides RSSDECK_STORE_URL)"),
    feeds_file: Path | None = typer.Option(None, "--feeds-file", help="JSON feed list file"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """Load settings and configure logging."""
    overrides: dict[str, Any] = {}
    if store_url is not None:
        overrides["store_url"] = store_url
    if feeds_file is not None:
        overrides["feeds_file"] = feeds_file
    if log_level is not None:
        overrides["log_level"] = log_level
    settings = get_settings(**overrides)
    configure_logging(settings.log_level, settings.log_format)
    ctx.obj = settings


def _run(ctx: typer.Context, action: Callable[[FeedDeck], Awaitable[T]]) -> T:
    settings: Settings = ctx.obj

    async def runner() -> T:
        async with FeedDeck.from_settings(settings) as deck:
            return await action(deck)

    try:
        return asyncio.run(runner())
    except RssDeckError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e


@app.command()
def version() -> None:
    """Show version."""
    from rssdeck import __version__

    console.print(f"rssdeck {__version__}")


@app.command()
def feeds(ctx: typer.Context) -> None:
    """List feeds with unread counts."""

    async def action(deck: FeedDeck) -> None:
        table = Table(title="Feeds")
        table.add_column("Feed")
        table.add_column("Unread", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Site", style="dim")
        table.add_column("URL", style="dim")
        for url in deck.feeds.feed_urls():
            feed = await deck.feed(url)
            if feed is None:
                table.add_row(escape(url), "-", "-", "", escape(url))
                continue
            row = projector.feed_row(feed, await deck.abstracts(url))
            table.add_row(
                escape(row.title),
                str(row.unread),
                str(row.total),
                escape(row.site_link),
                escape(row.url),
            )
        console.print(table)

    _run(ctx, action)


@app.command()
def articles(ctx: typer.Context, url: str = typer.Argument(..., help="Feed URL")) -> None:
    """List the articles of one feed."""

    async def action(deck: FeedDeck) -> None:
        rows = projector.article_rows(await deck.abstracts(url))
        if not rows:
            console.print("[yellow]No articles stored for this feed.[/yellow]")
            return
        table = Table(title=escape(url))
        table.add_column("Title")
        table.add_column("Link", style="dim")
        for row in rows:
            style = None if row.read else "bold"
            table.add_row(escape(row.label), escape(row.link), style=style)
        console.print(table)

    _run(ctx, action)


def _print_report(report: RefreshReport) -> None:
    table = Table(title="Refresh")
    table.add_column("Feed")
    table.add_column("Status")
    table.add_column("New", justify="right")
    table.add_column("Unread", justify="right")
    for outcome in report.outcomes:
        status = outcome.status.value if outcome.ok else f"[red]failed[/red]: {escape(outcome.error or '')}"
        title = outcome.feed.display_title if outcome.feed is not None else outcome.url
        table.add_row(escape(title), status, str(outcome.new), str(outcome.unread))
    console.print(table)


@app.command()
def refresh(
    ctx: typer.Context,
    cached: bool = typer.Option(False, "--cached", help="Only fetch feeds with nothing stored"),
) -> None:
    """Refresh all configured feeds."""
    report = _run(ctx, lambda deck: deck.refresh_all(force=not cached))
    if report is None:
        console.print("[yellow]A refresh is already running.[/yellow]")
        return
    _print_report(report)
    if report.failed:
        raise typer.Exit(code=1)


@app.command("refresh-one")
def refresh_one(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Feed URL"),
    update_content: bool = typer.Option(
        False, "--update-content", help="Replace stored content of republished entries"
    ),
) -> None:
    """Refresh a single feed."""
    outcome = _run(ctx, lambda deck: deck.refresh_one(url, update_content=update_content))
    if outcome is None:
        console.print("[yellow]A refresh is already running.[/yellow]")
        return
    if not outcome.ok:
        console.print(f"[red]Failed:[/red] {escape(outcome.error or '')}")
        raise typer.Exit(code=1)
    console.print(f"{outcome.new} new, {outcome.updated} updated, {outcome.unread} unread")


@app.command()
def read(ctx: typer.Context, link: str = typer.Argument(..., help="Article permalink")) -> None:
    """Show an article and mark it read."""

    async def action(deck: FeedDeck) -> Any:
        entry = await deck.entry(link)
        if entry is None:
            return None
        await deck.set_read(link, True)
        return entry

    entry = _run(ctx, action)
    if entry is None:
        console.print("[red]Unknown article.[/red]")
        raise typer.Exit(code=1)
    console.rule(escape(entry.title or entry.link))
    console.print(escape(entry.content))


def _set_read(ctx: typer.Context, link: str, value: bool) -> None:
    entry = _run(ctx, lambda deck: deck.set_read(link, value))
    if entry is None:
        console.print("[red]Unknown article.[/red]")
        raise typer.Exit(code=1)


@app.command("mark-read")
def mark_read(ctx: typer.Context, link: str = typer.Argument(..., help="Article permalink")) -> None:
    """Mark an article read."""
    _set_read(ctx, link, True)


@app.command("mark-unread")
def mark_unread(ctx: typer.Context, link: str = typer.Argument(..., help="Article permalink")) -> None:
    """Mark an article unread."""
    _set_read(ctx, link, False)


@app.command("mark-all-read")
def mark_all_read(ctx: typer.Context, url: str = typer.Argument(..., help="Feed URL")) -> None:
    """Mark every article of a feed read."""
    changed = _run(ctx, lambda deck: deck.mark_all_read(url))
    console.print(f"Marked {changed} article(s) read")


@app.command()
def add(ctx: typer.Context, url: str = typer.Argument(..., help="Feed URL")) -> None:
    """Add a feed (requires --feeds-file or RSSDECK_FEEDS_FILE)."""

    async def action(deck: FeedDeck) -> bool:
        try:
            return await deck.add_feed(url)
        except TypeError as e:
            raise typer.BadParameter("adding feeds needs a feeds file (--feeds-file)") from e

    if not _run(ctx, action):
        console.print("[yellow]Feed already listed.[/yellow]")


@app.command()
def remove(ctx: typer.Context, url: str = typer.Argument(..., help="Feed URL")) -> None:
    """Remove a feed and its stored articles."""
    _run(ctx, lambda deck: deck.remove_feed(url))
    console.print(f"Removed {escape(url)}")


@app.command()
def prune(ctx: typer.Context) -> None:
    """Remove stored feeds that are no longer in the feed list."""
    removed = _run(ctx, lambda deck: deck.prune_orphans())
    for url in removed:
        console.print(f"Removed {escape(url)}")
    console.print(f"Pruned {len(removed)} feed(s)")


@app.command("open")
def open_link(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Feed URL or article permalink"),
) -> None:
    """Open a feed's site or an article in the browser."""

    async def action(deck: FeedDeck) -> str | None:
        feed = await deck.feed(target)
        if feed is not None:
            return feed.link
        entry = await deck.entry(target)
        if entry is not None:
            return entry.link
        return None

    link = _run(ctx, action)
    if link is None:
        console.print("[red]Unknown feed or article.[/red]")
        raise typer.Exit(code=1)
    if not link:
        console.print("[red]Feed has no site link.[/red]")
        raise typer.Exit(code=1)
    typer.launch(link)


@app.command()
def watch(ctx: typer.Context) -> None:
    """Refresh all feeds every refresh_interval seconds until interrupted."""
    settings: Settings = ctx.obj

    async def loop(deck: FeedDeck) -> None:
        # The first pass fills only feeds that have nothing stored yet.
        force = False
        while True:
            report = await deck.refresh_all(force=force)
            if report is not None:
                _print_report(report)
            force = True
            await asyncio.sleep(settings.refresh_interval)

    try:
        _run(ctx, loop)
    except KeyboardInterrupt:
        console.print("Stopped")


if __name__ == "__main__":
    app()
