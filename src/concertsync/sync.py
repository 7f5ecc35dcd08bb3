"""Sequence the locate, download, extract and import phases of a catalog sync."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from .config import Settings
from .discovery import LOCAL_ARCHIVE_NAME, RemoteFileLocator
from .download import Downloader
from .extraction import ArchiveExtractor
from .importer import EntityImporter
from .logging_utils import render_fields_block
from .models import (
    CachedFileInfo,
    Clearing,
    Downloading,
    DownloadFailure,
    DownloadProgress,
    Extracting,
    ExtractionFailure,
    Idle,
    ImportFailure,
    ImportingRecordings,
    ImportingShows,
    ImportProgress,
    SyncAlreadyExists,
    SyncCleared,
    SyncError,
    SyncProgress,
    SyncResult,
    SyncSuccess,
)
from .persistence import CatalogStore

LOGGER = logging.getLogger(__name__)

ProgressListener = Callable[[SyncProgress], None]
DownloadListener = Callable[[DownloadProgress], None]


class SyncOrchestrator:
    """Runs a full catalog sync and publishes its state to listeners.

    Phases run strictly in sequence. A failing phase resets the state to
    ``Idle`` and ends the sync with ``SyncError``; batches imported before
    the failure stay in the store. Concurrent calls are not serialized here.
    """

    def __init__(
        self,
        *,
        locator: RemoteFileLocator,
        downloader: Downloader,
        extractor: ArchiveExtractor,
        importer: EntityImporter,
        data_dir: Path,
        extraction_dir: Path | None = None,
    ) -> None:
        self.locator = locator
        self.downloader = downloader
        self.extractor = extractor
        self.importer = importer
        self.data_dir = data_dir
        self.extraction_dir = extraction_dir or data_dir / "extracted_data"
        self._progress: SyncProgress = Idle()
        self._listeners: list[ProgressListener] = []
        self._download_listeners: list[DownloadListener] = []

    @property
    def progress(self) -> SyncProgress:
        return self._progress

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def add_download_listener(self, listener: DownloadListener) -> None:
        self._download_listeners.append(listener)

    def _set_progress(self, state: SyncProgress) -> None:
        self._progress = state
        for listener in self._listeners:
            listener(state)

    def _on_download(self, event: DownloadProgress) -> None:
        for listener in self._download_listeners:
            listener(event)

    def _fail(self, message: str) -> SyncError:
        LOGGER.error("Sync failed: %s", message)
        self._set_progress(Idle())
        return SyncError(message)

    # Public operations ---------------------------------------------------

    def sync_data(self) -> SyncResult:
        try:
            return self._run_sync()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unexpected error during sync")
            return self._fail(f"Unexpected error during sync: {exc}")

    def force_refresh_data(self) -> SyncResult:
        """Drop all shows and recordings plus the cached archive, then sync from the network."""
        try:
            self._set_progress(Clearing())
            self.importer.clear_all_shows()
            self.importer.clear_all_recordings()
            if not self.downloader.delete_local_file(self.data_dir / LOCAL_ARCHIVE_NAME):
                LOGGER.warning("Cached archive could not be removed; sync may reuse it")
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Failed to clear catalog before refresh")
            return self._fail(f"Failed to clear existing data: {exc}")
        return self.sync_data()

    def clear_all_data(self) -> SyncResult:
        """Reset the store, schema included.

        The store falls back to emptying its tables when the database file
        cannot be removed, and still reports success.
        """
        try:
            self._set_progress(Clearing())
            self.importer.delete_database_file()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Failed to reset the database")
            return self._fail(f"Failed to reset the database: {exc}")
        self._set_progress(Idle())
        LOGGER.info("Catalog database reset")
        return SyncCleared()

    def get_cached_data_file_info(self) -> CachedFileInfo | None:
        archive_path = self.data_dir / LOCAL_ARCHIVE_NAME
        try:
            stat = archive_path.stat()
        except OSError:
            return None
        return CachedFileInfo(file_name=archive_path.name, size_bytes=stat.st_size, last_modified=stat.st_mtime)

    # Phases --------------------------------------------------------------

    def _run_sync(self) -> SyncResult:
        show_count = self.importer.get_show_count()
        recording_count = self.importer.get_recording_count()
        if show_count > 0 and recording_count > 0:
            LOGGER.info("Catalog already populated (%d shows, %d recordings)", show_count, recording_count)
            return SyncAlreadyExists(show_count, recording_count)

        archive_path = self._locate_archive()
        if isinstance(archive_path, SyncError):
            return archive_path

        self._set_progress(Extracting())
        extraction = self.extractor.extract_all(archive_path, self.extraction_dir)
        if isinstance(extraction, ExtractionFailure):
            return self._fail(extraction.message)

        self._set_progress(ImportingShows(0, 0))
        shows = self.importer.import_shows(
            extraction.files,
            lambda p: self._import_step(ImportingShows, p),
        )
        if isinstance(shows, ImportFailure):
            return self._fail(shows.message)

        self._set_progress(ImportingRecordings(0, 0))
        recordings = self.importer.import_recordings(
            extraction.files,
            lambda p: self._import_step(ImportingRecordings, p),
        )
        if isinstance(recordings, ImportFailure):
            return self._fail(recordings.message)

        self.extractor.cleanup(self.extraction_dir)
        self._set_progress(Idle())

        LOGGER.info(
            render_fields_block(
                "Sync Complete",
                {
                    "Archive": archive_path.name,
                    "Shows Imported": shows.imported_count,
                    "Recordings Imported": recordings.imported_count,
                },
            )
        )
        return SyncSuccess(shows.imported_count, recordings.imported_count)

    def _import_step(self, state: type[ImportingShows] | type[ImportingRecordings], progress: ImportProgress) -> None:
        self._set_progress(state(progress.current, progress.total))

    def _locate_archive(self) -> Path | SyncError:
        self._set_progress(Downloading())
        local = self.locator.find_local(self.data_dir)
        if local is not None:
            LOGGER.info("Using cached archive %s", local.path)
            return Path(local.path)

        remote = self.locator.find_remote()
        if remote is None:
            return self._fail("No data archive found locally or in the latest release")

        result = self.downloader.download(remote, self.data_dir, self._on_download)
        if isinstance(result, DownloadFailure):
            return self._fail(result.message)
        return Path(result.local_path)


def create_sync_orchestrator_from_config(settings: Settings) -> tuple[SyncOrchestrator, CatalogStore]:
    """Wire the sync components from settings; the caller owns the returned store."""
    store = CatalogStore(settings.resolved_database_path)
    orchestrator = SyncOrchestrator(
        locator=RemoteFileLocator(settings.releases_url, timeout=settings.timeout),
        downloader=Downloader(chunk_size=settings.download_chunk_size, timeout=settings.timeout),
        extractor=ArchiveExtractor(),
        importer=EntityImporter(store),
        data_dir=settings.data_dir,
        extraction_dir=settings.extraction_dir,
    )
    return orchestrator, store
