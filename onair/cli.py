"""
Command-line interface for onair.

This module implements the CLI using Click, with rich-click for help
formatting and rich for the now-playing output.

Commands:
    onair now                   Fetch once and print track, program, recent tracks
    onair watch                 Keep polling and print every change until Ctrl+C
    onair history               Print the persisted played-track history
    onair prune                 Delete history older than the retention period

Options:
    --config <path>             Use a specific config.yaml
    --verbose                   Show DEBUG messages on the console
    --version                   Show version and exit

Exit Codes:
    0    success
    1    configuration error (or unexpected error)
    2    database error
    3    feed error
    4    other onair error
    130  interrupted
"""

import sys
import time
from datetime import timedelta
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import rich_click as click
from rich.console import Console
from rich.table import Table

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100

from onair import __version__
from onair.core import (
    Config,
    ConfigError,
    DatabaseError,
    FeedError,
    HistoryDatabase,
    OnAirError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from onair.feed import RadioApiClient, Track
from onair.sync import HistoryStore, ImmediateDispatcher, SyncController, SyncSnapshot

logger = get_logger(__name__)

console = Console()


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Path to config.yaml (default: ./config.yaml, or built-in defaults)"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show DEBUG messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool, version: bool) -> None:
    """
    onair: follow what a radio station is playing.

    Polls the station's now-playing feed on the cadence the server asks
    for and keeps a history of played tracks.

    \b
    USAGE:
        onair now                  # What's on right now
        onair watch                # Follow the station live
        onair history --limit 20   # Previously played tracks
        onair prune --days 7       # Drop old history
    """
    if version:
        click.echo(f"onair {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.obj = {"config_path": config_path, "verbose": verbose}


@contextmanager
def _session(options: dict) -> Generator[tuple[Config, HistoryStore], None, None]:
    """
    Load config, set up logging and open the history store.

    Maps onair errors onto exit codes, the same way for every command.
    """
    database: HistoryDatabase | None = None

    try:
        config = load_config(options["config_path"])
        setup_logging(config.logging.directory, verbose=options["verbose"])
        logger.debug(f"onair {__version__} starting")

        config.history.database.parent.mkdir(parents=True, exist_ok=True)
        database = HistoryDatabase(config.history.database)

        yield config, HistoryStore(database)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(2)

    except FeedError as e:
        click.echo(f"Feed error: {e.message}", err=True)
        logger.error(f"Feed error: {e.message}", exc_info=True)
        sys.exit(3)

    except OnAirError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        if database is not None:
            database.close()
        shutdown_logging()


# =============================================================================
# Rendering
# =============================================================================

def _track_line(track: Track) -> str:
    if track.is_presenter_segment:
        return "[bold red]On air[/bold red]: presenter segment"
    album = f" [dim]({track.album})[/dim]" if track.album else ""
    return f"[bold]{track.title}[/bold] - {track.artist}{album}"


def _tracks_table(title: str, tracks: list[Track]) -> Table:
    table = Table(title=title, title_justify="left", show_edge=False)
    table.add_column("When", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("Album", style="dim")
    for track in tracks:
        table.add_row(track.played_at_display, track.title, track.artist, track.album)
    return table


def _render_snapshot(station: str, snapshot: SyncSnapshot) -> None:
    console.rule(f"[bold]{station}[/bold]")
    console.print(f"Now playing: {_track_line(snapshot.track)}")

    program = snapshot.program
    hours = f" {program.start_time_display}-{program.end_time_display}" if program.start_time_display else ""
    presenter = f" with {program.presenter}" if program.presenter else ""
    console.print(f"Program: [bold]{program.title}[/bold]{presenter}[dim]{hours}[/dim]")

    if snapshot.last_error:
        console.print(f"[yellow]{snapshot.last_error}[/yellow]")

    if snapshot.recent_tracks:
        console.print(_tracks_table("Recently played", list(snapshot.recent_tracks)))
    else:
        console.print("[dim]No recent tracks yet[/dim]")


# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.pass_obj
def now(options: dict) -> None:
    """Fetch every feed once and print the result."""
    with _session(options) as (config, store):
        client = RadioApiClient(config.station)
        controller = SyncController(client, store, config, dispatcher=ImmediateDispatcher())
        try:
            controller.refresh_all()
            _render_snapshot(config.station.name, controller.snapshot())
        finally:
            controller.close()
            client.close()


@cli.command()
@click.pass_obj
def watch(options: dict) -> None:
    """Follow the station, printing every change until interrupted."""
    with _session(options) as (config, store):
        client = RadioApiClient(config.station)
        controller = SyncController(client, store, config)
        station = config.station.name

        def on_change(snapshot: SyncSnapshot) -> None:
            # Loading flips are not worth a redraw
            if not snapshot.is_loading:
                _render_snapshot(station, snapshot)

        controller.subscribe(on_change)
        try:
            with controller:
                while True:
                    time.sleep(1)
        finally:
            client.close()


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True,
              help="Number of tracks to show")
@click.pass_obj
def history(options: dict, limit: int) -> None:
    """Print the persisted played-track history, newest first."""
    with _session(options) as (config, store):
        tracks = store.fetch_recent(limit)
        if not tracks:
            console.print("[dim]History is empty[/dim]")
            return
        console.print(_tracks_table(f"History ({store.count()} tracks stored)", tracks))


@cli.command()
@click.option("--days", type=click.IntRange(min=1), default=None,
              help="Age limit in days (default: history.retention_days)")
@click.pass_obj
def prune(options: dict, days: Optional[int]) -> None:
    """Delete history older than the retention period."""
    with _session(options) as (config, store):
        if days is None:
            days = config.history.retention_days
        removed = store.prune_older_than(timedelta(days=days))
        console.print(f"Removed {removed} tracks older than {days} days, {store.count()} left")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `onair` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
