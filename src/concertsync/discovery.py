"""Locate the metadata archive, locally and on the release feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
from pydantic import ValidationError

from .config import DEFAULT_RELEASES_URL
from .models import LocalDataFile, RemoteDataFile
from .schemas import Release, ReleaseAsset

LOGGER = logging.getLogger(__name__)

LOCAL_ARCHIVE_NAME = "data.zip"


@dataclass(slots=True, frozen=True)
class DiscoveryResult:
    local: LocalDataFile | None
    remote: RemoteDataFile | None


def is_data_asset(name: str) -> bool:
    lowered = name.lower()
    return lowered.startswith("data") and lowered.endswith(".zip")


class RemoteFileLocator:
    """Finds the cached ``data.zip`` and the newest published archive.

    The two lookups are independent: a failure on one side is logged and
    reported as ``None`` without affecting the other.
    """

    def __init__(
        self,
        releases_url: str = DEFAULT_RELEASES_URL,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.releases_url = releases_url
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def discover(self, local_dir: Path) -> DiscoveryResult:
        return DiscoveryResult(local=self.find_local(local_dir), remote=self.find_remote())

    def find_local(self, local_dir: Path) -> LocalDataFile | None:
        candidate = local_dir / LOCAL_ARCHIVE_NAME
        try:
            if not candidate.is_file():
                return None
            size = candidate.stat().st_size
        except OSError as exc:
            LOGGER.warning("Could not inspect local archive %s: %s", candidate, exc)
            return None
        LOGGER.debug("Found local archive %s (%d bytes)", candidate, size)
        return LocalDataFile(path=str(candidate), size_bytes=size)

    def find_remote(self) -> RemoteDataFile | None:
        try:
            response = self._client.get(
                self.releases_url,
                headers={"Accept": "application/vnd.github+json"},
            )
            response.raise_for_status()
            release = Release.model_validate(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            LOGGER.warning("Failed to query releases at %s: %s", self.releases_url, exc)
            return None

        asset = self._select_asset(release.assets)
        if asset is None:
            LOGGER.warning("Release %s has no data archive asset", release.tag_name)
            return None
        LOGGER.debug("Release %s provides %s (%d bytes)", release.tag_name, asset.name, asset.size)
        return RemoteDataFile(name=asset.name, download_url=asset.browser_download_url, size_bytes=asset.size)

    @staticmethod
    def _select_asset(assets: list[ReleaseAsset]) -> ReleaseAsset | None:
        return next((asset for asset in assets if is_data_asset(asset.name)), None)

    def has_local_data_file(self, local_dir: Path) -> bool:
        return self.find_local(local_dir) is not None

    def has_remote_data_file(self) -> bool:
        return self.find_remote() is not None
