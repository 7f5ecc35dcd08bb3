"""Archive metadata client package.

Fetches per-recording metadata, track listings and reviews from the archive
metadata API and caches the mapped results on disk.
"""

from __future__ import annotations

from .adapter import ArchiveAdapter
from .client import ArchiveMetadataError, RemoteMetadataClient, create_metadata_client_from_config
from .models import ArchiveMetadataResponse, RecordingMetadata, Review, Track

__all__ = [
    "ArchiveAdapter",
    "ArchiveMetadataError",
    "ArchiveMetadataResponse",
    "RecordingMetadata",
    "RemoteMetadataClient",
    "Review",
    "Track",
    "create_metadata_client_from_config",
]
