"""Map extracted JSON documents to catalog records and persist them in batches."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from pathlib import Path, PurePosixPath
from typing import Protocol

from pydantic import BaseModel, ValidationError

from .models import (
    ExtractedFile,
    ImportFailure,
    ImportProgress,
    ImportResult,
    ImportSuccess,
    RecordingRecord,
    ShowRecord,
)
from .persistence import SchemaMismatchError
from .schemas import RecordingDocument, ShowDocument
from .search_text import build_search_text, date_parts
from .utils import now_millis

LOGGER = logging.getLogger(__name__)

SHOW_BATCH_SIZE = 50
RECORDING_BATCH_SIZE = 100

MIN_YEAR_EXCLUSIVE = 1960
MAX_YEAR_EXCLUSIVE = 2030
FALLBACK_YEAR = 1970
FALLBACK_MONTH = 1

DEFAULT_BAND = "Grateful Dead"
DEFAULT_VENUE = "Unknown Venue"
DEFAULT_COUNTRY = "USA"

SOURCE_TYPE_ALIASES = {
    "sbd": "SBD",
    "soundboard": "SBD",
    "aud": "AUD",
    "audience": "AUD",
    "matrix": "MATRIX",
    "mtx": "MATRIX",
    "fm": "FM",
    "radio": "FM",
    "remaster": "REMASTER",
}

_SEQUENCE_SUFFIX = re.compile(r"[-_]s(\d+)$", re.IGNORECASE)

ProgressCallback = Callable[[ImportProgress], None]


class CatalogPersistence(Protocol):
    """The store operations the importer and orchestrator rely on."""

    def insert_shows(self, shows: Sequence[ShowRecord], search_rows: Sequence[tuple[str, str]] = ()) -> None: ...

    def insert_recordings(self, recordings: Sequence[RecordingRecord]) -> None: ...

    def get_show_count(self) -> int: ...

    def get_recording_count(self) -> int: ...

    def delete_all_shows(self) -> None: ...

    def delete_all_recordings(self) -> None: ...

    def delete_database_file(self) -> bool: ...


def _posix(relative_path: str) -> str:
    return relative_path.replace("\\", "/")


def is_show_file(file: ExtractedFile) -> bool:
    relative = _posix(file.relative_path).lower()
    return not file.is_directory and "shows/" in relative and relative.endswith(".json")


def is_recording_file(file: ExtractedFile) -> bool:
    relative = _posix(file.relative_path).lower()
    return not file.is_directory and "recordings/" in relative and relative.endswith(".json")


def normalize_source_type(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    return SOURCE_TYPE_ALIASES.get(raw.strip().lower(), "UNKNOWN")


def _derive_year_month(date: str) -> tuple[int, int]:
    year, month = date_parts(date)
    return (FALLBACK_YEAR if year is None else year), (FALLBACK_MONTH if month is None else month)


def _show_sequence(show_id: str) -> int:
    match = _SEQUENCE_SUFFIX.search(show_id.strip())
    return int(match.group(1)) if match else 1


def _dump_json(items: Sequence[BaseModel] | Sequence[str] | None) -> str | None:
    if not items:
        return None
    return json.dumps(
        [item.model_dump(exclude_none=True) if isinstance(item, BaseModel) else item for item in items],
        ensure_ascii=False,
    )


def map_show(document: ShowDocument, timestamp: int) -> ShowRecord:
    """Map a show document to a record; an unreadable year or month falls back to 1970 or 1."""
    year, month = _derive_year_month(document.date)
    songs = document.song_names()
    members = document.member_names()
    recordings = [rec for rec in document.recordings or [] if rec.strip()]
    return ShowRecord(
        show_id=document.show_id.strip(),
        date=document.date.strip(),
        year=year,
        month=month,
        year_month=f"{year}-{month:02d}",
        band=(document.band or "").strip() or DEFAULT_BAND,
        url=document.url,
        venue_name=(document.venue or "").strip() or DEFAULT_VENUE,
        city=document.city,
        state=document.state,
        country=(document.country or "").strip() or DEFAULT_COUNTRY,
        location_raw=document.location_raw,
        setlist_status=document.setlist_status,
        setlist_raw=_dump_json(document.setlist),
        song_list=",".join(songs) or None,
        lineup_status=document.lineup_status,
        lineup_raw=_dump_json(document.lineup),
        member_list=",".join(members) or None,
        show_sequence=_show_sequence(document.show_id),
        recordings_raw=_dump_json(recordings),
        recording_count=len(recordings),
        best_recording_id=recordings[0] if recordings else None,
        average_rating=document.avg_rating,
        total_reviews=document.reviews or 0,
        is_in_library=False,
        library_added_at=None,
        created_at=timestamp,
        updated_at=timestamp,
    )


def is_valid_show(record: ShowRecord) -> bool:
    return (
        bool(record.show_id.strip())
        and bool(record.date.strip())
        and MIN_YEAR_EXCLUSIVE < record.year < MAX_YEAR_EXCLUSIVE
    )


def map_recording(identifier: str, show_id: str, document: RecordingDocument, timestamp: int) -> RecordingRecord:
    return RecordingRecord(
        identifier=identifier,
        show_id=show_id,
        source_type=normalize_source_type(document.source_type),
        source_type_raw=document.source_type,
        rating=document.rating,
        raw_rating=document.raw_rating,
        review_count=document.review_count,
        confidence=document.confidence,
        high_ratings=document.high_ratings,
        low_ratings=document.low_ratings,
        taper=document.taper,
        source=document.source,
        lineage=document.lineage,
        collection_timestamp=timestamp,
    )


def _schema_failure(exc: SchemaMismatchError) -> ImportFailure:
    return ImportFailure(f"Database schema mismatch: {exc}. Reset the database (clear all data) and sync again.")


class EntityImporter:
    """Imports show and recording documents into the catalog.

    Both entry points return an ``ImportResult`` instead of raising. A single
    malformed document is logged and skipped. Each batch is its own
    transaction; earlier batches stay committed if a later one fails.
    """

    def __init__(
        self,
        store: CatalogPersistence,
        *,
        show_batch_size: int = SHOW_BATCH_SIZE,
        recording_batch_size: int = RECORDING_BATCH_SIZE,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.store = store
        self.show_batch_size = show_batch_size
        self.recording_batch_size = recording_batch_size
        self._clock = clock

    # Store passthroughs --------------------------------------------------

    def get_show_count(self) -> int:
        return self.store.get_show_count()

    def get_recording_count(self) -> int:
        return self.store.get_recording_count()

    def clear_all_shows(self) -> None:
        self.store.delete_all_shows()

    def clear_all_recordings(self) -> None:
        self.store.delete_all_recordings()

    def delete_database_file(self) -> bool:
        return self.store.delete_database_file()

    # Parsing -------------------------------------------------------------

    @staticmethod
    def _load_show(file: ExtractedFile) -> ShowDocument | None:
        try:
            return ShowDocument.model_validate_json(Path(file.path).read_bytes())
        except (OSError, ValidationError) as exc:
            LOGGER.warning("Skipping show file %s: %s", file.relative_path, exc)
            return None

    @staticmethod
    def _load_recording(file: ExtractedFile) -> RecordingDocument | None:
        try:
            return RecordingDocument.model_validate_json(Path(file.path).read_bytes())
        except (OSError, ValidationError) as exc:
            LOGGER.warning("Skipping recording file %s: %s", file.relative_path, exc)
            return None

    # Shows ---------------------------------------------------------------

    def import_shows(
        self,
        files: Sequence[ExtractedFile],
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        show_files = [file for file in files if is_show_file(file)]
        total = len(show_files)
        LOGGER.info("Importing shows from %d files", total)

        timestamp = self._clock()
        batch: list[tuple[ShowRecord, str]] = []
        imported = 0
        invalid = 0

        try:
            for index, file in enumerate(show_files, start=1):
                document = self._load_show(file)
                if document is not None:
                    record = map_show(document, timestamp)
                    if is_valid_show(record):
                        batch.append((record, build_search_text(document)))
                    else:
                        invalid += 1
                        LOGGER.debug("Rejected invalid show %r (date %r)", record.show_id, record.date)

                if len(batch) >= self.show_batch_size:
                    imported += self._flush_shows(batch)
                    batch = []

                if on_progress is not None:
                    on_progress(ImportProgress(index, total, PurePosixPath(_posix(file.relative_path)).name))

            if batch:
                imported += self._flush_shows(batch)
        except SchemaMismatchError as exc:
            LOGGER.error("Show import aborted after %d shows: %s", imported, exc)
            return _schema_failure(exc)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Show import failed after %d shows", imported)
            return ImportFailure(f"Show import failed: {exc}")

        if invalid:
            LOGGER.warning("Rejected %d shows that failed validation", invalid)
        LOGGER.info("Imported %d shows", imported)
        return ImportSuccess(imported)

    def _flush_shows(self, batch: list[tuple[ShowRecord, str]]) -> int:
        shows = [record for record, _ in batch]
        search_rows = [(record.show_id, text) for record, text in batch]
        self.store.insert_shows(shows, search_rows)
        LOGGER.debug("Persisted batch of %d shows", len(shows))
        return len(shows)

    # Recordings ----------------------------------------------------------

    def import_recordings(
        self,
        files: Sequence[ExtractedFile],
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """Import recordings that are referenced by at least one show.

        Both show and recording documents are held in memory while the join is
        built, so memory grows with the size of the archive.
        """
        try:
            recording_ids_by_show = self._collect_show_recordings(files)
            recordings = self._collect_recordings(files)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Failed to read recording data")
            return ImportFailure(f"Recording import failed: {exc}")

        show_ids_by_recording: dict[str, list[str]] = {}
        for show_id, recording_ids in recording_ids_by_show.items():
            for recording_id in recording_ids:
                owners = show_ids_by_recording.setdefault(recording_id, [])
                if show_id not in owners:
                    owners.append(show_id)

        total = len(recordings)
        LOGGER.info("Importing %d recordings against %d shows", total, len(recording_ids_by_show))

        timestamp = self._clock()
        batch: list[RecordingRecord] = []
        imported = 0
        orphaned = 0

        try:
            for index, (identifier, document) in enumerate(recordings.items(), start=1):
                show_ids = show_ids_by_recording.get(identifier)
                if not show_ids:
                    orphaned += 1
                    LOGGER.debug("Recording %s is not referenced by any show", identifier)
                else:
                    for show_id in show_ids:
                        batch.append(map_recording(identifier, show_id, document, timestamp))
                        if len(batch) >= self.recording_batch_size:
                            imported += self._flush_recordings(batch)
                            batch = []

                if on_progress is not None:
                    on_progress(ImportProgress(index, total, identifier))

            if batch:
                imported += self._flush_recordings(batch)
        except SchemaMismatchError as exc:
            LOGGER.error("Recording import aborted after %d recordings: %s", imported, exc)
            return _schema_failure(exc)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Recording import failed after %d recordings", imported)
            return ImportFailure(f"Recording import failed: {exc}")

        if orphaned:
            LOGGER.warning(
                "Data consistency: %d of %d recordings are not referenced by any show and were skipped",
                orphaned,
                total,
            )
        LOGGER.info("Imported %d recordings", imported)
        return ImportSuccess(imported)

    def _collect_show_recordings(self, files: Sequence[ExtractedFile]) -> dict[str, list[str]]:
        recording_ids_by_show: dict[str, list[str]] = {}
        for file in files:
            if not is_show_file(file):
                continue
            document = self._load_show(file)
            if document is None or not document.show_id.strip():
                continue
            recording_ids_by_show[document.show_id.strip()] = [
                rec.strip() for rec in document.recordings or [] if rec.strip()
            ]
        return recording_ids_by_show

    def _collect_recordings(self, files: Sequence[ExtractedFile]) -> dict[str, RecordingDocument]:
        recordings: dict[str, RecordingDocument] = {}
        for file in files:
            if not is_recording_file(file):
                continue
            document = self._load_recording(file)
            if document is not None:
                recordings[PurePosixPath(_posix(file.relative_path)).stem] = document
        return recordings

    def _flush_recordings(self, batch: list[RecordingRecord]) -> int:
        self.store.insert_recordings(batch)
        LOGGER.debug("Persisted batch of %d recordings", len(batch))
        return len(batch)
