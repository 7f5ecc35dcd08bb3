"""Command line entry point."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.progress import Progress, TaskID
from rich.table import Table

from .archive import ArchiveMetadataError, create_metadata_client_from_config
from .config import Settings, load_config
from .logging_utils import configure_logging, render_fields_block
from .models import (
    Clearing,
    Downloading,
    DownloadProgress,
    Extracting,
    Idle,
    ImportingRecordings,
    ImportingShows,
    SyncAlreadyExists,
    SyncCleared,
    SyncError,
    SyncProgress,
    SyncResult,
    SyncSuccess,
)
from .persistence import CatalogStore
from .sync import SyncOrchestrator, create_sync_orchestrator_from_config
from .utils import format_bytes
from .version import __version__

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_SYNC_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="concertsync", description="Sync and browse the offline concert catalog.")
    parser.add_argument("--config", type=Path, default=None, help="Path to concertsync YAML config")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("sync", help="Import the catalog unless it is already populated")
    commands.add_parser("refresh", help="Drop the catalog and cached archive, then sync again")
    commands.add_parser("clear", help="Delete the catalog database")
    commands.add_parser("status", help="Show catalog and cache status")

    search = commands.add_parser("search", help="Full-text search over shows")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=25)

    for name, help_text in (
        ("metadata", "Show metadata for a recording"),
        ("tracks", "List the audio tracks of a recording"),
        ("reviews", "List reviews of a recording"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("identifier")

    cache_clear = commands.add_parser("cache-clear", help="Clear cached recording metadata")
    cache_clear.add_argument("identifier", nargs="?", default=None)
    return parser


class SyncProgressDisplay:
    """Mirrors orchestrator state onto a single rich progress bar."""

    _LABELS = {
        Idle: "Idle",
        Downloading: "Downloading",
        Extracting: "Extracting",
        Clearing: "Clearing",
        ImportingShows: "Importing shows",
        ImportingRecordings: "Importing recordings",
    }

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self.task_id: TaskID = progress.add_task("Starting", total=None)

    def on_state(self, state: SyncProgress) -> None:
        description = self._LABELS.get(type(state), type(state).__name__)
        if isinstance(state, (ImportingShows, ImportingRecordings)):
            self.progress.update(
                self.task_id, description=description, completed=state.current, total=state.total or None
            )
        else:
            self.progress.update(self.task_id, description=description, completed=0, total=None)

    def on_download(self, event: DownloadProgress) -> None:
        self.progress.update(
            self.task_id,
            description=f"Downloading {event.file_name}",
            completed=event.downloaded_bytes,
            total=event.total_bytes or None,
        )


def _run_sync(orchestrator: SyncOrchestrator, action: str) -> SyncResult:
    with Progress(disable=not LOGGER.isEnabledFor(logging.INFO)) as progress:
        display = SyncProgressDisplay(progress)
        orchestrator.add_listener(display.on_state)
        orchestrator.add_download_listener(display.on_download)
        if action == "refresh":
            return orchestrator.force_refresh_data()
        if action == "clear":
            return orchestrator.clear_all_data()
        return orchestrator.sync_data()


def _report_sync(result: SyncResult) -> int:
    if isinstance(result, SyncError):
        LOGGER.error(render_fields_block("Sync Failed", {"Error": result.message}))
        return EXIT_SYNC_ERROR
    if isinstance(result, SyncSuccess):
        LOGGER.info(render_fields_block("Sync", {"Shows": result.show_count, "Recordings": result.recording_count}))
    elif isinstance(result, SyncAlreadyExists):
        LOGGER.info(
            render_fields_block(
                "Catalog Already Present",
                {"Shows": result.show_count, "Recordings": result.recording_count},
            )
        )
    elif isinstance(result, SyncCleared):
        LOGGER.info("Catalog database cleared")
    return EXIT_OK


def _status(settings: Settings, console: Console) -> int:
    orchestrator, store = create_sync_orchestrator_from_config(settings)
    try:
        cached = orchestrator.get_cached_data_file_info()
        table = Table(title="Catalog Status", show_header=True, header_style="bold")
        table.add_column("Item")
        table.add_column("Value")
        table.add_row("Database", str(store.db_path))
        table.add_row("Shows", str(store.get_show_count()))
        table.add_row("Recordings", str(store.get_recording_count()))
        table.add_row("Cached archive", cached.file_name if cached else "none")
        if cached:
            table.add_row("Archive size", format_bytes(cached.size_bytes))
        console.print(table)
    finally:
        orchestrator.locator.close()
        orchestrator.downloader.close()
        store.close()
    return EXIT_OK


def _search(settings: Settings, console: Console, query: str, limit: int) -> int:
    store = CatalogStore(settings.resolved_database_path)
    try:
        shows = store.search_shows(query, limit=limit)
    finally:
        store.close()
    table = Table(title=f"Shows matching {query!r}", show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Venue")
    table.add_column("Location")
    table.add_column("Recordings", justify="right")
    for show in shows:
        location = ", ".join(part for part in (show.city, show.state) if part)
        table.add_row(show.date, show.venue_name, location, str(show.recording_count))
    console.print(table)
    return EXIT_OK


def _clear_archive_cache(settings: Settings, identifier: str | None) -> int:
    with create_metadata_client_from_config(settings) as client:
        removed = client.clear_cache(identifier) if identifier else client.clear_all_cache()
    LOGGER.info("Removed %d cached entries", removed)
    return EXIT_OK


def _archive_command(settings: Settings, console: Console, command: str, identifier: str) -> int:
    with create_metadata_client_from_config(settings) as client:
        try:
            if command == "metadata":
                metadata = client.get_recording_metadata(identifier)
                console.print(render_fields_block(metadata.identifier, metadata.model_dump(), pad_top=False))
            elif command == "tracks":
                table = Table(title=f"Tracks for {identifier}", show_header=True, header_style="bold")
                table.add_column("#", justify="right")
                table.add_column("Title")
                table.add_column("File")
                table.add_column("Length")
                for track in client.get_recording_tracks(identifier):
                    table.add_row(str(track.track_number or ""), track.title or "", track.name, track.duration or "")
                console.print(table)
            else:
                reviews = client.get_recording_reviews(identifier)
                if not reviews:
                    console.print(f"No reviews for {identifier}")
                for review in reviews:
                    console.print(
                        render_fields_block(
                            review.title or "(untitled)",
                            {
                                "Reviewer": review.reviewer,
                                "Date": review.review_date,
                                "Stars": review.rating,
                                "Review": review.body,
                            },
                        )
                    )
        except ArchiveMetadataError as exc:
            LOGGER.error("%s", exc)
            return EXIT_SYNC_ERROR
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        settings = load_config(args.config)
    except ValueError as exc:
        LOGGER.error("Failed to load config: %s", exc)
        return EXIT_CONFIG_ERROR

    console = Console()

    if args.command in ("sync", "refresh", "clear"):
        orchestrator, store = create_sync_orchestrator_from_config(settings)
        try:
            result = _run_sync(orchestrator, args.command)
        finally:
            orchestrator.locator.close()
            orchestrator.downloader.close()
            store.close()
        return _report_sync(result)
    if args.command == "status":
        return _status(settings, console)
    if args.command == "search":
        return _search(settings, console, args.query, args.limit)
    if args.command == "cache-clear":
        return _clear_archive_cache(settings, args.identifier)
    return _archive_command(settings, console, args.command, args.identifier)
