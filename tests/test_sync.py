"""Tests for the sync orchestrator."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import recording_payload, show_payload

from concertsync.config import Settings
from concertsync.discovery import RemoteFileLocator
from concertsync.download import Downloader
from concertsync.extraction import ArchiveExtractor
from concertsync.importer import EntityImporter
from concertsync.models import (
    CachedFileInfo,
    Clearing,
    Downloading,
    DownloadFailure,
    DownloadSuccess,
    Extracting,
    Idle,
    ImportingRecordings,
    ImportingShows,
    LocalDataFile,
    RemoteDataFile,
    SyncAlreadyExists,
    SyncCleared,
    SyncError,
    SyncSuccess,
)
from concertsync.persistence import CatalogStore
from concertsync.sync import SyncOrchestrator, create_sync_orchestrator_from_config

ARCHIVE_ENTRIES = {
    "shows/": None,
    "shows/1977-05-08.json": show_payload("1977-05-08-barton-hall", "1977-05-08", recordings=["rec-1", "rec-2"]),
    "shows/1977-05-09.json": show_payload("1977-05-09-buffalo", "1977-05-09", recordings=["rec-2"]),
    "recordings/rec-1.json": recording_payload(),
    "recordings/rec-2.json": recording_payload(source_type="AUD"),
    "recordings/orphan.json": recording_payload(),
}


@pytest.fixture
def data_dir(tmp_path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def store(tmp_path):
    store = CatalogStore(tmp_path / "catalog.db")
    yield store
    store.close()


@pytest.fixture
def locator():
    locator = MagicMock(spec=RemoteFileLocator)
    locator.find_local.return_value = None
    locator.find_remote.return_value = None
    return locator


@pytest.fixture
def downloader():
    downloader = MagicMock(spec=Downloader)
    downloader.delete_local_file.side_effect = lambda path: Downloader.delete_local_file(path)
    return downloader


@pytest.fixture
def orchestrator(store, locator, downloader, data_dir):
    return SyncOrchestrator(
        locator=locator,
        downloader=downloader,
        extractor=ArchiveExtractor(),
        importer=EntityImporter(store),
        data_dir=data_dir,
    )


@pytest.fixture
def states(orchestrator):
    recorded = []
    orchestrator.add_listener(recorded.append)
    return recorded


def _use_local_archive(locator, data_dir: Path, build_archive) -> Path:
    archive = build_archive(data_dir / "data.zip", ARCHIVE_ENTRIES)
    locator.find_local.return_value = LocalDataFile(str(archive), archive.stat().st_size)
    return archive


class TestSyncData:
    """Tests for SyncOrchestrator.sync_data."""

    def test_full_sync_from_local_archive(self, orchestrator, store, locator, data_dir, build_archive, states) -> None:
        _use_local_archive(locator, data_dir, build_archive)

        result = orchestrator.sync_data()

        assert result == SyncSuccess(show_count=2, recording_count=3)
        assert store.get_show_count() == 2
        assert store.get_recording_count() == 3
        locator.find_remote.assert_not_called()
        assert not (data_dir / "extracted_data").exists()
        assert orchestrator.progress == Idle()

        kinds = [type(state) for state in states]
        assert kinds[:2] == [Downloading, Extracting]
        assert ImportingShows in kinds
        assert ImportingRecordings in kinds
        assert kinds.index(ImportingShows) < kinds.index(ImportingRecordings)
        assert kinds[-1] is Idle
        assert ImportingShows(2, 2) in states
        assert ImportingRecordings(3, 3) in states

    def test_already_populated_short_circuits(self, orchestrator, locator, downloader, data_dir, build_archive) -> None:
        _use_local_archive(locator, data_dir, build_archive)
        assert isinstance(orchestrator.sync_data(), SyncSuccess)
        locator.reset_mock()

        result = orchestrator.sync_data()

        assert result == SyncAlreadyExists(show_count=2, recording_count=3)
        locator.find_local.assert_not_called()
        locator.find_remote.assert_not_called()
        downloader.download.assert_not_called()

    def test_downloads_when_no_local_archive(
        self, orchestrator, locator, downloader, data_dir, build_archive, states
    ) -> None:
        remote = RemoteDataFile("data-v2.zip", "https://example.com/data-v2.zip", 100)
        locator.find_remote.return_value = remote

        def fake_download(remote_file, dest_dir, on_progress=None):
            archive = build_archive(dest_dir / "data.zip", ARCHIVE_ENTRIES)
            return DownloadSuccess(str(archive))

        downloader.download.side_effect = fake_download

        result = orchestrator.sync_data()

        assert isinstance(result, SyncSuccess)
        assert downloader.download.call_args.args[:2] == (remote, data_dir)
        assert type(states[0]) is Downloading
        assert type(states[1]) is Extracting

    def test_no_archive_anywhere(self, orchestrator, states) -> None:
        result = orchestrator.sync_data()
        assert isinstance(result, SyncError)
        assert "No data archive" in result.message
        assert states[-1] == Idle()

    def test_download_failure(self, orchestrator, locator, downloader) -> None:
        locator.find_remote.return_value = RemoteDataFile("data.zip", "https://example.com/data.zip", 1)
        downloader.download.return_value = DownloadFailure("Download failed: timeout")

        result = orchestrator.sync_data()

        assert result == SyncError("Download failed: timeout")
        assert orchestrator.progress == Idle()

    def test_extraction_failure(self, orchestrator, locator, data_dir, store) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "data.zip").write_bytes(b"not a zip")
        locator.find_local.return_value = LocalDataFile(str(data_dir / "data.zip"), 9)

        result = orchestrator.sync_data()

        assert isinstance(result, SyncError)
        assert store.get_show_count() == 0

    def test_unexpected_exception_becomes_error(self, orchestrator, locator) -> None:
        locator.find_local.side_effect = RuntimeError("boom")
        result = orchestrator.sync_data()
        assert isinstance(result, SyncError)
        assert "boom" in result.message
        assert orchestrator.progress == Idle()

    def test_recording_failure_keeps_imported_shows(
        self, orchestrator, store, locator, data_dir, build_archive
    ) -> None:
        _use_local_archive(locator, data_dir, build_archive)

        with patch.object(store, "insert_recordings", side_effect=sqlite3.IntegrityError("constraint failed")):
            result = orchestrator.sync_data()

        assert isinstance(result, SyncError)
        assert store.get_show_count() == 2
        assert store.get_recording_count() == 0


class TestResetOperations:
    """Tests for force_refresh_data, clear_all_data and cached file info."""

    def test_force_refresh_clears_and_redownloads(
        self, orchestrator, store, locator, downloader, data_dir, build_archive, states
    ) -> None:
        _use_local_archive(locator, data_dir, build_archive)
        orchestrator.sync_data()
        locator.find_local.return_value = None
        locator.find_remote.return_value = RemoteDataFile("data.zip", "https://example.com/data.zip", 1)
        downloader.download.side_effect = lambda remote, dest_dir, on_progress=None: DownloadSuccess(
            str(build_archive(dest_dir / "data.zip", ARCHIVE_ENTRIES))
        )
        states.clear()

        result = orchestrator.force_refresh_data()

        assert result == SyncSuccess(show_count=2, recording_count=3)
        assert states[0] == Clearing()
        downloader.delete_local_file.assert_called_once_with(data_dir / "data.zip")
        downloader.download.assert_called_once()

    def test_clear_all_data(self, orchestrator, store, locator, data_dir, build_archive, states) -> None:
        _use_local_archive(locator, data_dir, build_archive)
        orchestrator.sync_data()
        states.clear()

        assert orchestrator.clear_all_data() == SyncCleared()
        assert store.get_show_count() == 0
        assert store.get_recording_count() == 0
        assert states == [Clearing(), Idle()]

    def test_clear_reports_success_when_file_cannot_be_deleted(self, orchestrator, store) -> None:
        with patch.object(Path, "unlink", side_effect=PermissionError("locked")):
            assert orchestrator.clear_all_data() == SyncCleared()
        assert store.get_show_count() == 0

    def test_schema_mismatch_then_reset_then_sync(self, tmp_path, locator, downloader, data_dir, build_archive) -> None:
        db_path = tmp_path / "legacy.db"
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE schema_version (version INTEGER PRIMARY KEY)")
        conn.execute("INSERT INTO schema_version VALUES (1)")
        conn.execute("CREATE TABLE shows (show_id TEXT PRIMARY KEY, date TEXT)")
        conn.execute("CREATE TABLE recordings (identifier TEXT, show_id TEXT)")
        conn.commit()
        conn.close()

        store = CatalogStore(db_path)
        orchestrator = SyncOrchestrator(
            locator=locator,
            downloader=downloader,
            extractor=ArchiveExtractor(),
            importer=EntityImporter(store),
            data_dir=data_dir,
        )
        _use_local_archive(locator, data_dir, build_archive)

        failed = orchestrator.sync_data()
        assert isinstance(failed, SyncError)
        assert "schema mismatch" in failed.message.lower()

        assert orchestrator.clear_all_data() == SyncCleared()
        assert orchestrator.sync_data() == SyncSuccess(show_count=2, recording_count=3)
        store.close()

    def test_cached_data_file_info(self, orchestrator, data_dir) -> None:
        assert orchestrator.get_cached_data_file_info() is None
        data_dir.mkdir(parents=True)
        (data_dir / "data.zip").write_bytes(b"1234")

        info = orchestrator.get_cached_data_file_info()

        assert isinstance(info, CachedFileInfo)
        assert (info.file_name, info.size_bytes) == ("data.zip", 4)
        assert info.last_modified > 0


class TestFactory:
    def test_create_from_config(self, tmp_path) -> None:
        settings = Settings(data_dir=tmp_path / "data", cache_dir=tmp_path / "cache")

        orchestrator, store = create_sync_orchestrator_from_config(settings)

        try:
            assert store.db_path == tmp_path / "data" / "catalog.db"
            assert orchestrator.extraction_dir == tmp_path / "data" / "extracted_data"
            assert orchestrator.downloader.chunk_size == 8192
        finally:
            orchestrator.locator.close()
            store.close()
