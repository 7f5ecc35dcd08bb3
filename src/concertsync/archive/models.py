"""Pydantic models for the archive metadata API and the domain models mapped from it."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _scalar_text(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def first_text(value: Any) -> str | None:
    """Single-valued field: a scalar as text, or the first non-blank array element."""
    if isinstance(value, list):
        for item in value:
            text = _scalar_text(item)
            if text is not None and text.strip():
                return text
        return None
    return _scalar_text(value)


def joined_text(value: Any) -> str | None:
    """List-like field: a string as-is, or the non-blank array elements joined by newlines."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = [text for text in (_scalar_text(item) for item in value) if text is not None and text.strip()]
        return "\n".join(parts) or None
    return None


# API responses ------------------------------------------------------------


class ArchiveFile(BaseModel):
    """One entry of the ``files`` array; the API sends numbers as strings or numbers."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, populate_by_name=True)

    name: str
    format: str = ""
    size: str | None = None
    length: str | None = None
    title: str | None = None
    track: str | None = None
    bitrate: str | None = None
    sample_rate: str | None = None


class ArchiveMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    identifier: str
    title: str = ""
    date: str | None = None
    venue: str | None = None
    creator: str | None = None
    description: str | None = None
    setlist: str | None = None
    source: str | None = None
    taper: str | None = None
    transferer: str | None = None
    lineage: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return first_text(value) or ""

    @field_validator("venue", "creator", "taper", "transferer", mode="before")
    @classmethod
    def _single(cls, value: Any) -> str | None:
        return first_text(value)

    @field_validator("description", "setlist", "source", "lineage", mode="before")
    @classmethod
    def _joined(cls, value: Any) -> str | None:
        return joined_text(value)


class ArchiveReview(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    title: str | None = Field(default=None, alias="reviewtitle")
    body: str | None = Field(default=None, alias="reviewbody")
    reviewer: str | None = None
    review_date: str | None = Field(default=None, alias="reviewdate")
    stars: int | None = None

    @field_validator("stars", mode="before")
    @classmethod
    def _stars(cls, value: Any) -> int | None:
        if value is None or value == "":
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


class ArchiveMetadataResponse(BaseModel):
    """Top level of ``GET {base}/{identifier}``."""

    model_config = ConfigDict(extra="ignore")

    files: list[ArchiveFile] = Field(default_factory=list)
    metadata: ArchiveMetadata | None = None
    reviews: list[ArchiveReview] | None = None


# Domain models --------------------------------------------------------------


class RecordingMetadata(BaseModel):
    identifier: str
    title: str
    date: str | None = None
    venue: str | None = None
    description: str | None = None
    setlist: str | None = None
    source: str | None = None
    taper: str | None = None
    transferer: str | None = None
    lineage: str | None = None
    total_tracks: int = 0
    total_reviews: int = 0


class Track(BaseModel):
    name: str
    title: str | None = None
    track_number: int | None = None
    duration: str | None = None
    format: str = ""
    size: str | None = None
    bitrate: str | None = None
    sample_rate: str | None = None
    is_audio: bool = True


class Review(BaseModel):
    reviewer: str | None = None
    title: str | None = None
    body: str | None = None
    rating: int | None = None
    review_date: str | None = None
