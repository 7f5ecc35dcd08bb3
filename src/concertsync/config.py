from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .utils import env_path, load_yaml_file, validate_url

DEFAULT_RELEASES_URL = "https://api.github.com/repos/ds17f/dead-metadata/releases/latest"
DEFAULT_METADATA_BASE_URL = "https://archive.org/metadata"
DEFAULT_CONFIG_PATH = Path("~/.config/concertsync/config.yaml")


@dataclass
class Settings:
    data_dir: Path = field(default_factory=lambda: Path("~/.local/share/concertsync").expanduser())
    cache_dir: Path = field(default_factory=lambda: Path("~/.cache/concertsync").expanduser())
    database_path: Path | None = None
    releases_url: str = DEFAULT_RELEASES_URL
    metadata_base_url: str = DEFAULT_METADATA_BASE_URL
    timeout: float = 30.0
    download_chunk_size: int = 8192

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.data_dir / "catalog.db"

    @property
    def archive_cache_dir(self) -> Path:
        return self.cache_dir / "archive"

    @property
    def extraction_dir(self) -> Path:
        return self.data_dir / "extracted_data"


def _build_url(data: dict[str, Any], key: str, default: str) -> str:
    raw = data.get(key)
    if raw is None:
        return default
    value = str(raw).strip()
    if not validate_url(value):
        raise ValueError(f"'settings.{key}' must be an http(s) URL, got {raw!r}")
    return value.rstrip("/")


def _build_path(data: dict[str, Any], key: str, default: Path | None) -> Path | None:
    raw = data.get(key)
    if raw is None:
        return default
    value = str(raw).strip()
    if not value:
        raise ValueError(f"'settings.{key}' must not be empty")
    return Path(value).expanduser()


def _build_settings(data: dict[str, Any]) -> Settings:
    if not isinstance(data, dict):
        raise ValueError("'settings' must be provided as a mapping")

    defaults = Settings()

    try:
        timeout = float(data.get("timeout", defaults.timeout))
    except (TypeError, ValueError) as exc:
        raise ValueError("'settings.timeout' must be a number") from exc
    if timeout <= 0:
        raise ValueError("'settings.timeout' must be greater than zero")

    try:
        chunk_size = int(data.get("download_chunk_size", defaults.download_chunk_size))
    except (TypeError, ValueError) as exc:
        raise ValueError("'settings.download_chunk_size' must be an integer") from exc
    if chunk_size <= 0:
        raise ValueError("'settings.download_chunk_size' must be greater than zero")

    return Settings(
        data_dir=_build_path(data, "data_dir", defaults.data_dir) or defaults.data_dir,
        cache_dir=_build_path(data, "cache_dir", defaults.cache_dir) or defaults.cache_dir,
        database_path=_build_path(data, "database_path", None),
        releases_url=_build_url(data, "releases_url", defaults.releases_url),
        metadata_base_url=_build_url(data, "metadata_base_url", defaults.metadata_base_url),
        timeout=timeout,
        download_chunk_size=chunk_size,
    )


def _apply_env_overrides(settings: Settings) -> Settings:
    data_dir = env_path("CONCERTSYNC_DATA_DIR")
    if data_dir is not None:
        settings.data_dir = data_dir
    cache_dir = env_path("CONCERTSYNC_CACHE_DIR")
    if cache_dir is not None:
        settings.cache_dir = cache_dir
    database_path = env_path("CONCERTSYNC_DATABASE")
    if database_path is not None:
        settings.database_path = database_path
    return settings


def load_config(path: Path | None = None) -> Settings:
    """Load settings from YAML, falling back to defaults when the file is absent.

    Environment variables (``CONCERTSYNC_DATA_DIR``, ``CONCERTSYNC_CACHE_DIR``,
    ``CONCERTSYNC_DATABASE``) win over values from the file.
    """
    config_path = path or env_path("CONCERTSYNC_CONFIG") or DEFAULT_CONFIG_PATH.expanduser()
    data: dict[str, Any] = {}
    if config_path.exists():
        data = load_yaml_file(config_path)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
    elif path is not None:
        raise ValueError(f"Config file not found: {config_path}")

    settings = _build_settings(data.get("settings", {}) or {})
    return _apply_env_overrides(settings)
