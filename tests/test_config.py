from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from concertsync.config import DEFAULT_METADATA_BASE_URL, DEFAULT_RELEASES_URL, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("CONCERTSYNC_DATA_DIR", "CONCERTSYNC_CACHE_DIR", "CONCERTSYNC_DATABASE", "CONCERTSYNC_CONFIG"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_defaults_when_default_file_missing(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CONCERTSYNC_CONFIG", str(tmp_path / "absent.yaml"))
    settings = load_config()
    assert settings.releases_url == DEFAULT_RELEASES_URL
    assert settings.metadata_base_url == DEFAULT_METADATA_BASE_URL
    assert settings.timeout == 30.0
    assert settings.download_chunk_size == 8192


def test_explicit_missing_path_is_an_error(tmp_path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_config(tmp_path / "absent.yaml")


def test_values_and_derived_paths(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CS_ROOT", str(tmp_path))
    path = _write(
        tmp_path,
        """
        settings:
          data_dir: ${CS_ROOT}/data
          cache_dir: ${CS_ROOT}/cache
          metadata_base_url: https://mirror.example.com/metadata/
          timeout: 5
          download_chunk_size: 65536
        """,
    )

    settings = load_config(path)

    assert settings.data_dir == tmp_path / "data"
    assert settings.resolved_database_path == tmp_path / "data" / "catalog.db"
    assert settings.extraction_dir == tmp_path / "data" / "extracted_data"
    assert settings.archive_cache_dir == tmp_path / "cache" / "archive"
    assert settings.metadata_base_url == "https://mirror.example.com/metadata"
    assert settings.timeout == 5.0
    assert settings.download_chunk_size == 65536


def test_env_overrides_win(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path, "settings:\n  data_dir: /from/file\n")
    monkeypatch.setenv("CONCERTSYNC_DATA_DIR", str(tmp_path / "env-data"))
    monkeypatch.setenv("CONCERTSYNC_DATABASE", str(tmp_path / "custom.db"))

    settings = load_config(path)

    assert settings.data_dir == tmp_path / "env-data"
    assert settings.resolved_database_path == tmp_path / "custom.db"


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("settings:\n  timeout: -1\n", "settings.timeout"),
        ("settings:\n  timeout: soon\n", "settings.timeout"),
        ("settings:\n  download_chunk_size: 0\n", "settings.download_chunk_size"),
        ("settings:\n  releases_url: ftp://example.com/x\n", "settings.releases_url"),
        ("settings:\n  data_dir: ''\n", "settings.data_dir"),
        ("settings: [1, 2]\n", "mapping"),
        ("- just\n- a list\n", "mapping"),
    ],
)
def test_invalid_values_raise(tmp_path, body, message) -> None:
    with pytest.raises(ValueError, match=message):
        load_config(_write(tmp_path, body))
