from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from concertsync.models import ExtractedFile


def show_payload(show_id: str, date: str, recordings: list[str] | None = None, **extra) -> dict:
    payload = {
        "show_id": show_id,
        "date": date,
        "venue": "Barton Hall",
        "city": "Ithaca",
        "state": "NY",
        "recordings": recordings or [],
    }
    payload.update(extra)
    return payload


def recording_payload(**extra) -> dict:
    payload = {"source_type": "SBD", "rating": 4.5, "review_count": 12, "taper": "Betty Cantor-Jackson"}
    payload.update(extra)
    return payload


@pytest.fixture
def write_entries(tmp_path):
    """Write ``{relative_path: payload}`` under tmp_path and return ExtractedFile entries."""

    def _write(entries: dict[str, object]) -> list[ExtractedFile]:
        root = tmp_path / "extracted"
        files: list[ExtractedFile] = []
        for relative, payload in entries.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            text = payload if isinstance(payload, str) else json.dumps(payload)
            target.write_text(text, encoding="utf-8")
            files.append(ExtractedFile(str(target), relative, False, target.stat().st_size))
        return files

    return _write


@pytest.fixture
def build_archive(tmp_path):
    """Create a zip at ``path`` holding ``{name: payload}`` entries."""

    def _build(path: Path, entries: dict[str, object]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as archive:
            for name, payload in entries.items():
                if name.endswith("/"):
                    archive.writestr(name, "")
                    continue
                text = payload if isinstance(payload, str) else json.dumps(payload)
                archive.writestr(name, text)
        return path

    return _build
