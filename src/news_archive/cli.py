"""CLI entry point for news-archive.

Commands:
- export: Export the REST news history, one gzip JSONL file per day
- stream: Ingest the live news stream through the event buffer
- buffer: Show events held in the disk buffer
"""

import asyncio
import os
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from news_archive import __version__
from news_archive.api.auth import ApiAuth, AuthenticationError
from news_archive.config import Config, load_config
from news_archive.logging import get_logger, setup_logging
from news_archive.stream.buffer import StreamBufferError
from news_archive.stream.ingestor import StreamError

console = Console()
logger = get_logger(__name__)


def _load(config: Path | None) -> Config:
    """Load config from file, or defaults when no file is given."""
    if config is None:
        return Config()
    try:
        return load_config(config)
    except ValidationError as e:
        console.print(f"[bold red]Invalid config:[/bold red] {e}")
        raise click.Abort() from e


def _resolve_auth(cfg: Config) -> ApiAuth:
    """Load the API token from the environment, prompting when it is unset."""
    token = os.environ.get(cfg.api.token_env)
    if not token:
        token = click.prompt("API Token", hide_input=True)
    try:
        return ApiAuth(token=token, token_env=cfg.api.token_env)
    except AuthenticationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise click.Abort() from e


def _print_traceback(ctx: click.Context) -> None:
    if ctx.obj.get("verbose"):
        import traceback

        console.print("\n[dim]Traceback:[/dim]")
        console.print(traceback.format_exc())


@click.group()
@click.version_option(version=__version__, prog_name="news-archive")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Vendor news feed archiver.

    Exports the REST news history to a resumable, file-per-day archive and
    ingests the live stream through a durable event buffer.

    \b
    Quick Start:
        1. export NEWS_API_TOKEN=...
        2. Export history:  news-archive export --dir ./export
        3. Stream live:     news-archive stream --disk-buffer
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to config.yaml file",
)
@click.option(
    "--dir",
    "-d",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Writeable directory to place export files",
)
@click.option("--from-year", type=int, default=None, help="First year to export")
@click.option("--to-year", type=int, default=None, help="Last year to export (inclusive)")
@click.pass_context
def export(
    ctx: click.Context,
    config: Path | None,
    output_dir: Path | None,
    from_year: int | None,
    to_year: int | None,
) -> None:
    """Export news history to <dir>/<year>/<Month>/<YYYY_MM_DD>.json.gz.

    Days that already have a file are skipped, so an interrupted export can
    simply be run again. Each year is exported by its own worker; a failed
    day stops only that year.
    """
    from news_archive.pipeline import export_range

    cfg = _load(config)
    if output_dir is not None:
        cfg.export.root = output_dir
    if from_year is not None:
        cfg.export.start_year = from_year
    if to_year is not None:
        cfg.export.end_year = to_year

    end_year = cfg.export.resolved_end_year()
    if end_year < cfg.export.start_year:
        console.print("[bold red]Error:[/bold red] from-year must be <= to-year")
        raise click.Abort()

    auth = _resolve_auth(cfg)

    console.print(
        f"[bold]Exporting {cfg.export.start_year}-{end_year} to {cfg.export.root}[/bold]"
    )

    try:
        results = asyncio.run(export_range(cfg, auth))
    except KeyboardInterrupt:
        console.print("\n[yellow]Export interrupted by user[/yellow]")
        raise click.Abort() from None

    table = Table(title="Export summary")
    table.add_column("Year", justify="right")
    table.add_column("Exported", justify="right")
    table.add_column("Empty", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Stories", justify="right")
    table.add_column("Status")

    for result in results:
        status = "[green]ok[/green]" if result.ok else f"[red]failed: {result.error}[/red]"
        table.add_row(
            str(result.year),
            str(result.exported),
            str(result.empty),
            str(result.skipped),
            str(result.items),
            status,
        )
    console.print(table)

    failed = [r for r in results if not r.ok]
    if failed:
        console.print(
            f"\n[yellow]{len(failed)} year(s) failed. Run export again to resume.[/yellow]"
        )
        raise click.Abort()

    console.print("\n[bold green]Export complete![/bold green]")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to config.yaml file",
)
@click.option("--memory-buffer", is_flag=True, default=False, help="Buffer events in memory")
@click.option("--disk-buffer", is_flag=True, default=False, help="Buffer events on disk")
@click.option(
    "--buffer-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Disk buffer location (defaults to the system temp directory)",
)
@click.pass_context
def stream(
    ctx: click.Context,
    config: Path | None,
    memory_buffer: bool,
    disk_buffer: bool,
    buffer_path: Path | None,
) -> None:
    """Ingest the live news stream until interrupted (Ctrl+C)."""
    from news_archive.pipeline import LoggingHandler, stream_news

    cfg = _load(config)
    if memory_buffer:
        cfg.stream.buffer.use_memory = True
    if disk_buffer:
        cfg.stream.buffer.use_disk = True
    if buffer_path is not None:
        cfg.stream.buffer.disk_path = buffer_path

    auth = _resolve_auth(cfg)
    handler = LoggingHandler()

    console.print("[bold]Streaming news[/bold] (Ctrl+C to stop)")

    try:
        asyncio.run(stream_news(cfg, auth, handler))
    except (StreamError, StreamBufferError) as e:
        console.print(f"\n[bold red]Stream failed:[/bold red] {e}")
        _print_traceback(ctx)
        raise click.Abort() from e

    console.print(f"\n[bold green]Stream stopped.[/bold green] Events handled: {handler.handled}")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to config.yaml file",
)
@click.option(
    "--buffer-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Disk buffer location (defaults to the system temp directory)",
)
def buffer(config: Path | None, buffer_path: Path | None) -> None:
    """List events held in the disk buffer."""
    from news_archive.stream.buffer import StreamBuffer, default_disk_path

    cfg = _load(config)
    path = buffer_path or cfg.stream.buffer.disk_path or default_disk_path()
    if not path.exists():
        console.print(f"[yellow]No disk buffer at {path}[/yellow]")
        return

    try:
        with StreamBuffer(
            use_disk=True, disk_path=path, lock_timeout=cfg.stream.buffer.lock_timeout
        ) as buf:
            events = buf.entries()
    except StreamBufferError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise click.Abort() from e

    table = Table(title=f"Buffered events ({len(events)})")
    table.add_column("ID", justify="right")
    table.add_column("Action")
    table.add_column("Timestamp")
    table.add_column("Title")
    for event in events:
        content = event.data.content
        table.add_row(
            str(event.id),
            event.data.action,
            event.data.timestamp.isoformat() if event.data.timestamp else "",
            content.title if content else "",
        )
    console.print(table)
    logger.debug("Listed %d buffered events from %s", len(events), path)


if __name__ == "__main__":
    main()
