"""Adapter to convert archive metadata responses to domain models."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from .models import ArchiveFile, ArchiveMetadataResponse, RecordingMetadata, Review, Track

AUDIO_EXTENSIONS = frozenset({"mp3", "flac", "ogg", "m4a", "wav", "aac", "wma"})

_FILENAME_PREFIXES = ("gd", "grateful_dead")
_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DISC_TRACK_PREFIX = re.compile(r"^d\dt\d+\.")


def is_audio_file(filename: str) -> bool:
    name = filename.lower()
    if "." not in name:
        return False
    return name.rsplit(".", 1)[1] in AUDIO_EXTENSIONS


def title_from_filename(filename: str) -> str:
    """Best-effort song title for files without a ``title`` field.

    Strips the extension, a ``gd``/``grateful_dead`` prefix, a leading
    ``YYYY-MM-DD`` and a leading ``d1t01.`` marker, then turns underscores into
    spaces. ``d1t01.Scarlet_Begonias.mp3`` becomes ``Scarlet Begonias``.
    """
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    for prefix in _FILENAME_PREFIXES:
        stem = stem.removeprefix(prefix)
    stem = _DATE_PREFIX.sub("", stem, count=1)
    stem = _DISC_TRACK_PREFIX.sub("", stem, count=1)
    title = stem.replace("_", " ").strip()
    return title or filename


def _track_number(file: ArchiveFile, fallback: int) -> int:
    try:
        return int(file.track) if file.track is not None else fallback
    except ValueError:
        return fallback


class ArchiveAdapter:
    """Converts ``ArchiveMetadataResponse`` payloads to the cached domain models."""

    def audio_files(self, response: ArchiveMetadataResponse) -> list[ArchiveFile]:
        return [file for file in response.files if is_audio_file(PurePosixPath(file.name).name)]

    def to_recording_metadata(self, response: ArchiveMetadataResponse) -> RecordingMetadata:
        metadata = response.metadata
        return RecordingMetadata(
            identifier=metadata.identifier if metadata else "",
            title=metadata.title if metadata else "",
            date=metadata.date if metadata else None,
            venue=metadata.venue if metadata else None,
            description=metadata.description if metadata else None,
            setlist=metadata.setlist if metadata else None,
            source=metadata.source if metadata else None,
            taper=metadata.taper if metadata else None,
            transferer=metadata.transferer if metadata else None,
            lineage=metadata.lineage if metadata else None,
            total_tracks=len(self.audio_files(response)),
            total_reviews=len(response.reviews or []),
        )

    def to_tracks(self, response: ArchiveMetadataResponse) -> list[Track]:
        """Audio files as tracks, ordered by filename.

        Track numbers come from the ``track`` field, else from the file's
        position among audio files in the response.
        """
        tracks = [
            Track(
                name=file.name,
                title=file.title or title_from_filename(file.name),
                track_number=_track_number(file, index),
                duration=file.length,
                format=file.format,
                size=file.size,
                bitrate=file.bitrate,
                sample_rate=file.sample_rate,
                is_audio=True,
            )
            for index, file in enumerate(self.audio_files(response), start=1)
        ]
        return sorted(tracks, key=lambda track: track.name)

    def to_reviews(self, response: ArchiveMetadataResponse) -> list[Review]:
        return [
            Review(
                reviewer=review.reviewer,
                title=review.title,
                body=review.body,
                rating=review.stars,
                review_date=review.review_date,
            )
            for review in response.reviews or []
        ]
