"""Tests for the command line entry point."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from concertsync import cli
from concertsync.archive import ArchiveMetadataError, RecordingMetadata, Review, Track
from concertsync.models import (
    ImportingShows,
    SyncAlreadyExists,
    SyncCleared,
    SyncError,
    SyncSuccess,
)
from concertsync.persistence import CatalogStore


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("CONCERTSYNC_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("CONCERTSYNC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CONCERTSYNC_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("CONCERTSYNC_DATABASE", raising=False)
    with patch("concertsync.cli.configure_logging"):
        yield tmp_path


@pytest.fixture
def fake_orchestrator():
    orchestrator = MagicMock()
    store = MagicMock()
    with patch("concertsync.cli.create_sync_orchestrator_from_config", return_value=(orchestrator, store)):
        yield orchestrator, store


@pytest.fixture
def fake_metadata_client():
    client = MagicMock()
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    with patch("concertsync.cli.create_metadata_client_from_config", return_value=client):
        yield client


class TestSyncCommands:
    """Exit codes for the sync family of commands."""

    @pytest.mark.parametrize(
        ("command", "method", "result", "code"),
        [
            ("sync", "sync_data", SyncSuccess(2, 3), 0),
            ("sync", "sync_data", SyncAlreadyExists(2, 3), 0),
            ("sync", "sync_data", SyncError("no archive"), 2),
            ("refresh", "force_refresh_data", SyncSuccess(1, 1), 0),
            ("clear", "clear_all_data", SyncCleared(), 0),
        ],
    )
    def test_exit_codes(self, fake_orchestrator, command, method, result, code) -> None:
        orchestrator, store = fake_orchestrator
        getattr(orchestrator, method).return_value = result

        assert cli.main([command]) == code

        getattr(orchestrator, method).assert_called_once_with()
        store.close.assert_called_once()
        orchestrator.locator.close.assert_called_once()

    def test_config_error_exit_code(self, tmp_path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text("settings:\n  timeout: -5\n", encoding="utf-8")
        assert cli.main(["--config", str(config), "sync"]) == 1

    def test_progress_display_tracks_states(self) -> None:
        progress = MagicMock()
        display = cli.SyncProgressDisplay(progress)
        display.on_state(ImportingShows(5, 10))
        kwargs = progress.update.call_args.kwargs
        assert (kwargs["description"], kwargs["completed"], kwargs["total"]) == ("Importing shows", 5, 10)


class TestCatalogCommands:
    def test_status_on_empty_catalog(self, isolated_env, capsys) -> None:
        assert cli.main(["status"]) == 0
        out = capsys.readouterr().out
        assert "Catalog Status" in out
        assert "Shows" in out

    def test_search(self, isolated_env, capsys) -> None:
        from test_persistence import make_show

        store = CatalogStore(isolated_env / "data" / "catalog.db")
        store.insert_shows([make_show("a")], [("a", "5/8/77 Barton Hall")])
        store.close()

        assert cli.main(["search", "barton"]) == 0
        assert "1977-05-08" in capsys.readouterr().out


class TestArchiveCommands:
    def test_metadata(self, fake_metadata_client, capsys) -> None:
        fake_metadata_client.get_recording_metadata.return_value = RecordingMetadata(
            identifier="gd77-05-08", title="Cornell", venue="Barton Hall"
        )
        assert cli.main(["metadata", "gd77-05-08"]) == 0
        assert "Barton Hall" in capsys.readouterr().out
        fake_metadata_client.get_recording_metadata.assert_called_once_with("gd77-05-08")

    def test_tracks(self, fake_metadata_client, capsys) -> None:
        fake_metadata_client.get_recording_tracks.return_value = [
            Track(name="d1t01.mp3", title="Minglewood", track_number=1, format="VBR MP3")
        ]
        assert cli.main(["tracks", "gd77-05-08"]) == 0
        assert "Minglewood" in capsys.readouterr().out

    def test_reviews(self, fake_metadata_client, capsys) -> None:
        fake_metadata_client.get_recording_reviews.return_value = [Review(reviewer="x", title="Legendary", rating=5)]
        assert cli.main(["reviews", "gd77-05-08"]) == 0
        assert "Legendary" in capsys.readouterr().out

    def test_metadata_error_exit_code(self, fake_metadata_client) -> None:
        fake_metadata_client.get_recording_metadata.side_effect = ArchiveMetadataError("offline")
        assert cli.main(["metadata", "gd77-05-08"]) == 2

    @pytest.mark.parametrize(
        ("args", "method"),
        [(["cache-clear"], "clear_all_cache"), (["cache-clear", "x"], "clear_cache")],
    )
    def test_cache_clear(self, fake_metadata_client, args, method) -> None:
        getattr(fake_metadata_client, method).return_value = 1
        assert cli.main(args) == 0
        getattr(fake_metadata_client, method).assert_called_once()

    def test_cache_clear_for_one_recording(self, fake_metadata_client) -> None:
        fake_metadata_client.clear_cache.return_value = 3
        assert cli.main(["cache-clear", "gd77-05-08"]) == 0
        fake_metadata_client.clear_cache.assert_called_once_with("gd77-05-08")
        fake_metadata_client.clear_all_cache.assert_not_called()

    @pytest.mark.parametrize("command", ["metadata", "tracks", "reviews"])
    def test_identifier_is_required(self, fake_metadata_client, command) -> None:
        with pytest.raises(SystemExit):
            cli.main([command])
        fake_metadata_client.get_recording_metadata.assert_not_called()
