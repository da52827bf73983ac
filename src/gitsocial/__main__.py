"""CLI entry point.

Reconstructs repository logs, shows threads and searches indexed entries:
    python -m gitsocial log --scope timeline
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import click

from gitsocial.config import Config, load_config
from gitsocial.history.service import TIMELINE_SCOPE, LogFilter, get_logs
from gitsocial.logging import setup_logging
from gitsocial.models import EntryType, LogEntry, ThreadItem
from gitsocial.search.indexer import LogIndexer
from gitsocial.thread import ThreadSort, build_context, build_thread_items, posts_from_entries

ENTRY_TYPES = [t.value for t in EntryType]


def format_timestamp(ts: int) -> str:
    """Format timestamp for display."""
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def print_entry(entry: LogEntry, verbose: bool = False) -> None:
    """Print a reconstructed log entry."""
    click.echo(
        f"\033[33m{entry.hash}\033[0m \033[36m[{format_timestamp(int(entry.timestamp.timestamp()))}]\033[0m "
        f"\033[32m{entry.type}\033[0m {entry.details}"
    )
    if verbose:
        click.echo(f"  Author: {entry.author.name} <{entry.author.email}>")
        if entry.post_id:
            click.echo(f"  Post: {entry.post_id}")


def print_hit(hit: dict[str, Any]) -> None:
    """Print a log entry search hit."""
    doc = hit["document"]
    click.echo(
        f"\033[33m{doc['hash']}\033[0m \033[36m[{format_timestamp(doc['ts'])}]\033[0m "
        f"\033[32m{doc['type']}\033[0m {doc['details']}"
    )
    click.echo(f"  Repository: {doc['repository']}")


def print_thread_item(item: ThreadItem) -> None:
    """Print a thread row indented by its depth."""
    post = item.data
    indent = "  " * abs(item.depth)
    marker = "\033[1m*\033[0m " if item.type == "anchor" else ""
    first_line = post.content.split("\n", 1)[0] if post is not None else ""
    click.echo(
        f"{indent}{marker}\033[33m{item.key}\033[0m "
        f"\033[36m[{format_timestamp(int(post.timestamp.timestamp())) if post else ''}]\033[0m {first_line}"
    )


def _build_filter(
    config: Config,
    since: datetime | None,
    until: datetime | None,
    limit: int | None,
    types: tuple[str, ...],
) -> LogFilter:
    return LogFilter(
        since=since,
        until=until,
        limit=limit,
        types=list(types) or None,
        storage_base=config.storage.base,
    )


def _load_entries(workdir: Path, scope: str, log_filter: LogFilter) -> list[LogEntry]:
    result = get_logs(workdir, scope, log_filter)
    if not result.success:
        error = result.error
        click.echo(f"Error [{error.code}]: {error.message}", err=True)
        sys.exit(1)
    return result.data or []


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config.yaml")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Social history of git repositories."""
    config = load_config(config_path)
    setup_logging("cli", log_dir=config.log_dir, console=False)
    ctx.obj = config


@cli.command()
@click.option("--workdir", "-C", type=click.Path(path_type=Path), default=Path.cwd, help="Repository path")
@click.option("--scope", "-s", help="repository:my, timeline or repository:<url>[#branch:<name>]")
@click.option("--since", type=click.DateTime(), help="Only entries after this date")
@click.option("--until", type=click.DateTime(), help="Only entries before this date")
@click.option("--limit", "-n", type=int, help="Maximum number of commits to read")
@click.option("--type", "types", multiple=True, type=click.Choice(ENTRY_TYPES), help="Entry types to show")
@click.option("--verbose", "-v", is_flag=True, help="Show more details")
@click.pass_obj
def log(
    config: Config,
    workdir: Path,
    scope: str | None,
    since: datetime | None,
    until: datetime | None,
    limit: int | None,
    types: tuple[str, ...],
    verbose: bool,
) -> None:
    """Show the reconstructed log."""
    log_filter = _build_filter(config, since, until, limit, types)
    entries = _load_entries(workdir, scope or config.default_scope, log_filter)

    for entry in entries:
        print_entry(entry, verbose)


@cli.command()
@click.option("--workdir", "-C", type=click.Path(path_type=Path), default=Path.cwd, help="Repository path")
@click.option("--scope", "-s", help="repository:my, timeline or repository:<url>[#branch:<name>]")
@click.pass_obj
def index(config: Config, workdir: Path, scope: str | None) -> None:
    """Index the reconstructed log into Typesense."""
    entries = _load_entries(workdir, scope or config.default_scope, _build_filter(config, None, None, None, ()))

    indexer = LogIndexer(config.typesense)
    try:
        indexer.ensure_collections()
        counts = indexer.upsert_entries(entries)
    except Exception as e:
        click.echo(f"Error indexing entries: {e}", err=True)
        sys.exit(1)

    click.echo(f"Indexed {counts['success']} entries ({counts['failed']} failed)")


@cli.command()
@click.argument("post_id")
@click.option("--workdir", "-C", type=click.Path(path_type=Path), default=Path.cwd, help="Repository path")
@click.option("--scope", "-s", default=TIMELINE_SCOPE, help="Scope to collect posts from")
@click.option("--sort", type=click.Choice([s.value for s in ThreadSort]), help="Reply order")
@click.pass_obj
def thread(config: Config, post_id: str, workdir: Path, scope: str, sort: str | None) -> None:
    """Show a post with its parents and replies."""
    entries = _load_entries(workdir, scope, _build_filter(config, None, None, None, ()))
    posts = posts_from_entries(entries)

    result = build_context(post_id, posts, sort or config.thread.sort)
    if not result.success:
        click.echo(f"Error [{result.error.code}]: {result.error.message}", err=True)
        sys.exit(1)

    items = build_thread_items(
        result.data,
        posts,
        max_parents=config.thread.max_parents,
        max_children=config.thread.max_children,
        max_depth=config.thread.max_depth,
    )
    for item in items:
        print_thread_item(item)


@cli.command()
@click.argument("query")
@click.option("--type", "entry_type", type=click.Choice(ENTRY_TYPES), help="Filter by entry type")
@click.option("--repository", help="Filter by repository")
@click.option("--limit", "-n", default=10, help="Number of results")
@click.pass_obj
def search(config: Config, query: str, entry_type: str | None, repository: str | None, limit: int) -> None:
    """Search indexed log entries."""
    indexer = LogIndexer(config.typesense)

    filters = {}
    if entry_type:
        filters["type"] = entry_type
    if repository:
        filters["repository"] = repository

    try:
        results = indexer.search_entries(query, per_page=limit, filters=filters)
    except Exception as e:
        click.echo(f"Error searching entries: {e}", err=True)
        sys.exit(1)

    found = results.get("found", 0)
    hits = results.get("hits", [])

    click.echo(f"Found {found} entries (showing {len(hits)}):\n")

    for hit in hits:
        print_hit(hit)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
