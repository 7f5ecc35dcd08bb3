"""Search index text for shows.

The client matches free-typed dates such as ``5/8/77``, ``8.5.77`` or
``1977-5-8`` with plain FTS token queries, so every spelling of the show's
date is written into the indexed text up front.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Iterable

from .schemas import ShowDocument

DATE_SEPARATORS = ("-", "/", ".")

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")


def parse_show_date(value: str) -> dt.date | None:
    """Parse the leading ``YYYY-MM-DD`` of a show date, or None if it is not a real date."""
    match = _DATE_PATTERN.match(value.strip())
    if not match:
        return None
    try:
        return dt.date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def _to_int(part: str) -> int | None:
    part = part.strip()
    return int(part) if part.isdigit() else None


def date_parts(value: str) -> tuple[int | None, int | None]:
    """Read year and month from the ``-`` separated parts of a show date.

    Each part is read on its own, so ``1977-05`` and ``1977-05-32`` still
    yield 1977 and 5. A month outside 1-12 is reported as None.
    """
    parts = value.strip().split("-")
    year = _to_int(parts[0])
    month = _to_int(parts[1]) if len(parts) > 1 else None
    if month is not None and not 1 <= month <= 12:
        month = None
    return year, month


def _partial_variants(value: str) -> list[str]:
    raw = value.strip()
    year, month = date_parts(raw)
    if year is None or not 1000 <= year <= 9999:
        return [raw] if raw else []

    yyyy = str(year)
    yy = yyyy[-2:]
    variants = [raw, yyyy, yy]
    if month is not None:
        for sep in DATE_SEPARATORS:
            for year_text in (yy, yyyy):
                variants.append(sep.join((str(month), year_text)))
                variants.append(sep.join((f"{month:02d}", year_text)))
    variants.append(yyyy[:3])
    return _unique(variants)


def date_variants(value: str) -> list[str]:
    """Return every date spelling the search box should match for ``value``."""
    parsed = parse_show_date(value)
    if parsed is None:
        return _partial_variants(value)

    yyyy = f"{parsed.year:04d}"
    yy = yyyy[-2:]
    m, d = str(parsed.month), str(parsed.day)
    mm, dd = f"{parsed.month:02d}", f"{parsed.day:02d}"

    variants = [yyyy, yy]
    for sep in DATE_SEPARATORS:
        for year in (yy, yyyy):
            # month first
            variants.append(sep.join((m, d, year)))
            variants.append(sep.join((mm, dd, year)))
            # day first
            variants.append(sep.join((d, m, year)))
            variants.append(sep.join((dd, mm, year)))
            # month/year only
            variants.append(sep.join((m, year)))
            variants.append(sep.join((mm, year)))
        # year first
        variants.append(sep.join((yyyy, m, d)))
        variants.append(sep.join((yyyy, mm, dd)))
    variants.append(yyyy[:3])
    return _unique(variants)


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def build_search_text(show: ShowDocument) -> str:
    """Build the FTS row text for one show document."""
    parts: list[str] = list(date_variants(show.date))
    for value in (show.venue, show.city, show.state, show.location_raw):
        if value and value.strip():
            parts.append(value.strip())
    members = show.member_names()
    if members:
        parts.append(" ".join(members))
    songs = show.song_names()
    if songs:
        parts.append(" ".join(songs))
    return " ".join(_unique(parts))
