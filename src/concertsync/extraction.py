"""Unpack the metadata archive into a working directory."""

from __future__ import annotations

import logging
import shutil
import zipfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Protocol

from .models import (
    ExtractedFile,
    ExtractionCompleted,
    ExtractionFailure,
    ExtractionProgress,
    ExtractionResult,
    ExtractionStarted,
    ExtractionStep,
    ExtractionSuccess,
)
from .utils import ensure_directory, remove_tree

LOGGER = logging.getLogger(__name__)

StepCallback = Callable[[int, int], None]
ProgressCallback = Callable[[ExtractionProgress], None]


class UnsafeArchiveEntryError(ValueError):
    """An archive entry would be written outside the output directory."""


class ZipExtractor(Protocol):
    def extract_all(self, archive_path: Path, output_dir: Path, on_step: StepCallback) -> list[ExtractedFile]: ...


class ZipFileExtractor:
    """``zipfile``-backed extractor that keeps the archive's directory layout."""

    def extract_all(self, archive_path: Path, output_dir: Path, on_step: StepCallback) -> list[ExtractedFile]:
        root = output_dir.resolve()
        extracted: list[ExtractedFile] = []
        with zipfile.ZipFile(archive_path) as archive:
            entries = archive.infolist()
            total = len(entries)
            for index, entry in enumerate(entries, start=1):
                on_step(index, total)
                target = (root / entry.filename).resolve()
                if target != root and root not in target.parents:
                    raise UnsafeArchiveEntryError(f"Archive entry escapes output directory: {entry.filename}")

                relative = str(PurePosixPath(entry.filename.rstrip("/")))
                if entry.is_dir():
                    ensure_directory(target)
                    extracted.append(ExtractedFile(str(target), relative, True, 0))
                    continue

                ensure_directory(target.parent)
                with archive.open(entry) as source, target.open("wb") as sink:
                    shutil.copyfileobj(source, sink)
                extracted.append(ExtractedFile(str(target), relative, False, entry.file_size))
        return extracted


class ArchiveExtractor:
    def __init__(self, extractor: ZipExtractor | None = None) -> None:
        self.extractor = extractor or ZipFileExtractor()

    def extract_all(
        self,
        archive_path: Path,
        output_dir: Path,
        on_progress: ProgressCallback | None = None,
    ) -> ExtractionResult:
        """Extract ``archive_path`` into a freshly emptied ``output_dir``."""

        def emit(event: ExtractionProgress) -> None:
            if on_progress is not None:
                on_progress(event)

        if not archive_path.is_file():
            return ExtractionFailure(f"Archive not found: {archive_path}")

        try:
            if output_dir.exists():
                LOGGER.debug("Removing stale extraction directory %s", output_dir)
                remove_tree(output_dir)
            ensure_directory(output_dir)

            emit(ExtractionStarted())
            files = self.extractor.extract_all(
                archive_path,
                output_dir,
                lambda current, total: emit(ExtractionStep(current, total)),
            )
        except (OSError, zipfile.BadZipFile, ValueError) as exc:
            LOGGER.error("Failed to extract %s: %s", archive_path, exc)
            return ExtractionFailure(f"Extraction failed: {exc}")

        emit(ExtractionCompleted())
        LOGGER.info("Extracted %d entries from %s", len(files), archive_path.name)
        return ExtractionSuccess(files)

    @staticmethod
    def cleanup(output_dir: Path) -> bool:
        try:
            remove_tree(output_dir)
        except OSError as exc:
            LOGGER.warning("Failed to remove %s: %s", output_dir, exc)
            return False
        return True

    @staticmethod
    def validate_archive(archive_path: Path) -> bool:
        """Return True when ``archive_path`` is a readable zip with intact entries."""
        try:
            with zipfile.ZipFile(archive_path) as archive:
                return archive.testzip() is None
        except (OSError, zipfile.BadZipFile):
            return False
