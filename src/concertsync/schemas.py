"""Pydantic models for the release feed and the JSON documents inside the data archive."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ReleaseAsset(BaseModel):
    """A downloadable file attached to a published release."""

    model_config = ConfigDict(extra="ignore")

    name: str
    size: int = 0
    browser_download_url: str
    content_type: str | None = None


class Release(BaseModel):
    """Latest-release response from the releases API."""

    model_config = ConfigDict(extra="ignore")

    tag_name: str
    name: str | None = None
    published_at: str | None = None
    assets: list[ReleaseAsset] = Field(default_factory=list)


class SongDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    url: str | None = None
    segue_into_next: bool | None = None


class SetDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    set_name: str | None = None
    songs: list[SongDocument] | None = None


class LineupMemberDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    instruments: str | None = None
    image_url: str | None = None


class ShowDocument(BaseModel):
    """One ``shows/*.json`` document.

    Unknown keys are ignored and everything except the id and date is optional,
    since older exports omit whole sections.
    """

    model_config = ConfigDict(extra="ignore")

    show_id: str
    date: str
    band: str | None = None
    venue: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    location_raw: str | None = None
    url: str | None = None
    setlist_status: str | None = None
    setlist: list[SetDocument] | None = None
    lineup_status: str | None = None
    lineup: list[LineupMemberDocument] | None = None
    recordings: list[str] | None = None
    avg_rating: float | None = None
    reviews: int | None = None

    def song_names(self) -> list[str]:
        names: list[str] = []
        for show_set in self.setlist or []:
            for song in show_set.songs or []:
                if song.name.strip():
                    names.append(song.name.strip())
        return names

    def member_names(self) -> list[str]:
        return [member.name.strip() for member in self.lineup or [] if member.name.strip()]


class RecordingDocument(BaseModel):
    """One ``recordings/*.json`` document; keyed by file name, not by an in-file id."""

    model_config = ConfigDict(extra="ignore")

    source_type: str | None = None
    rating: float = 0.0
    raw_rating: float = 0.0
    review_count: int = 0
    confidence: float = 0.0
    high_ratings: int = 0
    low_ratings: int = 0
    taper: str | None = None
    source: str | None = None
    lineage: str | None = None
