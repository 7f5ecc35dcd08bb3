from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(slots=True)
class ShowRecord:
    show_id: str
    date: str
    year: int
    month: int
    year_month: str
    band: str
    url: Optional[str]
    venue_name: str
    city: Optional[str]
    state: Optional[str]
    country: str
    location_raw: Optional[str]
    setlist_status: Optional[str]
    setlist_raw: Optional[str]
    song_list: Optional[str]
    lineup_status: Optional[str]
    lineup_raw: Optional[str]
    member_list: Optional[str]
    show_sequence: int
    recordings_raw: Optional[str]
    recording_count: int
    best_recording_id: Optional[str]
    average_rating: Optional[float]
    total_reviews: int
    is_in_library: bool
    library_added_at: Optional[int]
    created_at: int
    updated_at: int


@dataclass(slots=True)
class RecordingRecord:
    identifier: str
    show_id: str
    source_type: Optional[str]
    source_type_raw: Optional[str]
    rating: float
    raw_rating: float
    review_count: int
    confidence: float
    high_ratings: int
    low_ratings: int
    taper: Optional[str]
    source: Optional[str]
    lineage: Optional[str]
    collection_timestamp: int


@dataclass(slots=True, frozen=True)
class ExtractedFile:
    """One entry written out of an archive."""

    path: str
    relative_path: str
    is_directory: bool
    size_bytes: int


@dataclass(slots=True, frozen=True)
class LocalDataFile:
    path: str
    size_bytes: int


@dataclass(slots=True, frozen=True)
class RemoteDataFile:
    name: str
    download_url: str
    size_bytes: int


@dataclass(slots=True, frozen=True)
class CachedFileInfo:
    file_name: str
    size_bytes: int
    last_modified: float


def _fraction(current: int, total: int) -> float:
    return current / total if total > 0 else 0.0


# Download ---------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class DownloadProgress:
    file_name: str = ""
    downloaded_bytes: int = 0
    total_bytes: int = 0
    completed: bool = False
    error: Optional[str] = None

    @property
    def percent(self) -> float:
        return _fraction(self.downloaded_bytes, self.total_bytes)


@dataclass(slots=True, frozen=True)
class DownloadSuccess:
    local_path: str


@dataclass(slots=True, frozen=True)
class DownloadFailure:
    message: str


DownloadResult = Union[DownloadSuccess, DownloadFailure]


# Extraction -------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ExtractionStarted:
    pass


@dataclass(slots=True, frozen=True)
class ExtractionStep:
    current: int
    total: int

    @property
    def percent(self) -> float:
        return _fraction(self.current, self.total)


@dataclass(slots=True, frozen=True)
class ExtractionCompleted:
    pass


ExtractionProgress = Union[ExtractionStarted, ExtractionStep, ExtractionCompleted]


@dataclass(slots=True, frozen=True)
class ExtractionSuccess:
    files: list[ExtractedFile]


@dataclass(slots=True, frozen=True)
class ExtractionFailure:
    message: str


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]


# Import -----------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ImportProgress:
    current: int
    total: int
    current_file: str = ""

    @property
    def percent(self) -> float:
        return _fraction(self.current, self.total)


@dataclass(slots=True, frozen=True)
class ImportSuccess:
    imported_count: int


@dataclass(slots=True, frozen=True)
class ImportFailure:
    message: str


ImportResult = Union[ImportSuccess, ImportFailure]


# Sync -------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Idle:
    pass


@dataclass(slots=True, frozen=True)
class Downloading:
    pass


@dataclass(slots=True, frozen=True)
class Extracting:
    pass


@dataclass(slots=True, frozen=True)
class Clearing:
    pass


@dataclass(slots=True, frozen=True)
class ImportingShows:
    current: int
    total: int

    @property
    def percent(self) -> float:
        return _fraction(self.current, self.total)


@dataclass(slots=True, frozen=True)
class ImportingRecordings:
    current: int
    total: int

    @property
    def percent(self) -> float:
        return _fraction(self.current, self.total)


SyncProgress = Union[Idle, Downloading, Extracting, Clearing, ImportingShows, ImportingRecordings]


@dataclass(slots=True, frozen=True)
class SyncSuccess:
    show_count: int
    recording_count: int


@dataclass(slots=True, frozen=True)
class SyncAlreadyExists:
    show_count: int
    recording_count: int


@dataclass(slots=True, frozen=True)
class SyncError:
    message: str


@dataclass(slots=True, frozen=True)
class SyncCleared:
    pass


SyncResult = Union[SyncSuccess, SyncAlreadyExists, SyncError, SyncCleared]
