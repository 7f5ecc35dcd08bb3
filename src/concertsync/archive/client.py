"""HTTP client for the archive metadata API."""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from ..cache import CacheCategory, ExpiringFileCache
from ..config import DEFAULT_METADATA_BASE_URL, Settings
from .adapter import ArchiveAdapter
from .models import ArchiveMetadataResponse, RecordingMetadata, Review, Track

LOGGER = logging.getLogger(__name__)

_METADATA = TypeAdapter(RecordingMetadata)
_TRACKS = TypeAdapter(list[Track])
_REVIEWS = TypeAdapter(list[Review])

T = TypeVar("T")


class ArchiveMetadataError(Exception):
    """Metadata for a recording could not be fetched or parsed."""


class RemoteMetadataClient:
    """Fetches recording metadata, tracks and reviews with a file cache in front.

    Cached entries hold the mapped domain models, not the raw API payload, so
    a hit never touches the network or the adapter.
    """

    def __init__(
        self,
        cache: ExpiringFileCache,
        *,
        base_url: str = DEFAULT_METADATA_BASE_URL,
        timeout: float = 30.0,
        adapter: ArchiveAdapter | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            cache: Cache for mapped responses
            base_url: Metadata endpoint; requests go to ``{base_url}/{identifier}``
            timeout: HTTP request timeout in seconds
            adapter: Response-to-domain mapper
        """
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.adapter = adapter or ArchiveAdapter()
        self._client = httpx.Client(timeout=timeout, follow_redirects=True)

    def _fetch(self, identifier: str) -> ArchiveMetadataResponse:
        url = f"{self.base_url}/{identifier}"
        try:
            response = self._client.get(url)
            response.raise_for_status()
            return ArchiveMetadataResponse.model_validate_json(response.content)
        except httpx.HTTPError as exc:
            raise ArchiveMetadataError(f"Failed to fetch metadata for {identifier}: {exc}") from exc
        except ValidationError as exc:
            raise ArchiveMetadataError(f"Unexpected metadata payload for {identifier}: {exc}") from exc

    def _cached(self, identifier: str, category: CacheCategory, adapter: TypeAdapter[T]) -> T | None:
        raw = self.cache.get(identifier, category)
        if raw is None:
            return None
        try:
            value = adapter.validate_json(raw)
        except ValidationError as exc:
            LOGGER.debug("Ignoring unreadable %s cache for %s: %s", category.value, identifier, exc)
            return None
        LOGGER.debug("Using cached %s: %s", category.value, identifier)
        return value

    def get_recording_metadata(self, identifier: str) -> RecordingMetadata:
        """Fetch recording metadata.

        Raises:
            ArchiveMetadataError: On network or payload errors
        """
        cached = self._cached(identifier, CacheCategory.METADATA, _METADATA)
        if cached is not None:
            return cached

        metadata = self.adapter.to_recording_metadata(self._fetch(identifier))
        self.cache.put(identifier, CacheCategory.METADATA, metadata.model_dump_json())
        return metadata

    def get_recording_tracks(self, identifier: str) -> list[Track]:
        """Fetch the audio tracks of a recording, ordered by filename.

        Raises:
            ArchiveMetadataError: On network or payload errors
        """
        cached = self._cached(identifier, CacheCategory.TRACKS, _TRACKS)
        if cached is not None:
            return cached

        tracks = self.adapter.to_tracks(self._fetch(identifier))
        self.cache.put(identifier, CacheCategory.TRACKS, _TRACKS.dump_json(tracks).decode("utf-8"))
        return tracks

    def get_recording_reviews(self, identifier: str) -> list[Review]:
        """Fetch reviews; any failure yields an empty list."""
        cached = self._cached(identifier, CacheCategory.REVIEWS, _REVIEWS)
        if cached is not None:
            return cached

        try:
            reviews = self.adapter.to_reviews(self._fetch(identifier))
        except ArchiveMetadataError as exc:
            LOGGER.warning("Reviews unavailable for %s: %s", identifier, exc)
            return []
        self.cache.put(identifier, CacheCategory.REVIEWS, _REVIEWS.dump_json(reviews).decode("utf-8"))
        return reviews

    def clear_cache(self, identifier: str) -> int:
        return self.cache.clear(key=identifier)

    def clear_all_cache(self) -> int:
        return self.cache.clear()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RemoteMetadataClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()


def create_metadata_client_from_config(settings: Settings) -> RemoteMetadataClient:
    return RemoteMetadataClient(
        ExpiringFileCache(settings.archive_cache_dir),
        base_url=settings.metadata_base_url,
        timeout=settings.timeout,
    )
