"""
Command line interface for the markdown live index.

Usage:
    markdown-live-index scan DIRECTORY
    markdown-live-index watch DIRECTORY [--repo URL] [--duration SECONDS]
"""

import asyncio
import logging.config
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from markdown_live_index.broadcast import DeliveredEvent, InMemoryTransport
from markdown_live_index.config import LiveIndexConfig
from markdown_live_index.core.live_index import LiveIndex
from markdown_live_index.models import BaseError

console = Console()


def create_pages_table(index: LiveIndex) -> Table:
    """Create a rich table listing every page with its relationships."""
    table = Table(title="Pages", show_header=True)
    table.add_column("URI", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Tags", style="magenta")
    table.add_column("Links", style="green", justify="right")
    table.add_column("Backlinks", style="yellow", justify="right")

    for record in index.list_pages():
        table.add_row(
            record.uri,
            record.title or "",
            ", ".join(record.tags),
            str(len(index.analyzer.get_links(record.uri))),
            str(len(index.analyzer.get_backlinks(record.uri))),
        )
    return table


def create_tags_table(index: LiveIndex) -> Table:
    table = Table(title="Tags", show_header=True)
    table.add_column("Tag", style="magenta")
    table.add_column("Pages", style="white")

    for tag in index.analyzer.list_tags():
        table.add_row(tag, ", ".join(sorted(index.analyzer.get_tag_members(tag))))
    return table


def print_event(event: DeliveredEvent) -> None:
    target = event.room if event.room is not None else f"connection {event.connection}"
    console.print(f"[bold]{event.event}[/bold] → [cyan]{target}[/cyan] {event.payload or ''}")


def _build_config(directory: Path, **overrides) -> LiveIndexConfig:
    config = LiveIndexConfig(docs_directory=directory, **overrides)
    logging.config.dictConfig(config.get_log_config())
    return config


@click.group()
def main():
    """Live index of a markdown tree with room-based update notifications."""


@main.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--log-level", default="WARNING", show_default=True, help="Logging level")
def scan(directory: Path, log_level: str):
    """Index DIRECTORY once and print pages, links and tags."""
    config = _build_config(directory, monitoring_enabled=False, log_level=log_level.upper())
    index = LiveIndex(config)

    try:
        asyncio.run(index.start())
    except BaseError as e:
        raise click.ClickException(str(e)) from e

    console.print(create_pages_table(index))
    console.print(create_tags_table(index))
    stats = index.analyzer.get_graph_stats()
    console.print(
        f"[bold green]{stats['node_count']}[/bold green] pages, "
        f"[bold green]{stats['edge_count']}[/bold green] links, "
        f"[bold green]{stats['tag_count']}[/bold green] tags"
    )


@main.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--repo", "repo_url", default=None, help="Remote git repository to mirror into DIRECTORY")
@click.option("--branch", default=None, help="Branch to check out")
@click.option("--sync-interval", default=30.0, show_default=True, help="Seconds between pulls")
@click.option("--duration", default=None, type=float, help="Stop after this many seconds")
@click.option("--log-level", default="INFO", show_default=True, help="Logging level")
def watch(
    directory: Path,
    repo_url: str | None,
    branch: str | None,
    sync_interval: float,
    duration: float | None,
    log_level: str,
):
    """Keep DIRECTORY indexed and print every broadcast event."""
    config = _build_config(
        directory,
        repo_url=repo_url,
        repo_branch=branch,
        sync_interval_seconds=sync_interval,
        log_level=log_level.upper(),
    )

    try:
        asyncio.run(_run_watch(config, duration))
    except KeyboardInterrupt:
        console.print("Stopped.")
    except BaseError as e:
        raise click.ClickException(str(e)) from e


async def _run_watch(config: LiveIndexConfig, duration: float | None) -> None:
    index = LiveIndex(config, transport=InMemoryTransport(on_event=print_event))

    async with index:
        console.print(
            Panel.fit(
                f"Watching [cyan]{index.directory}[/cyan]\n"
                f"Indexed [bold green]{len(index.store)}[/bold green] documents",
                title="markdown-live-index",
                border_style="blue",
            )
        )
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


if __name__ == "__main__":
    main()
