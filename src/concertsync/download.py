from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import requests

from .discovery import LOCAL_ARCHIVE_NAME
from .models import DownloadFailure, DownloadProgress, DownloadResult, DownloadSuccess, RemoteDataFile
from .utils import ensure_directory, format_bytes

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192

ProgressCallback = Callable[[DownloadProgress], None]


def _content_length(response: requests.Response) -> int:
    try:
        return int(response.headers.get("Content-Length") or 0)
    except ValueError:
        return 0


class Downloader:
    """Streams a release asset to ``{dest_dir}/data.zip``."""

    def __init__(
        self,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.session = session or requests.Session()

    def download(
        self,
        remote: RemoteDataFile,
        dest_dir: Path,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadResult:
        """Download ``remote`` and report byte progress.

        Progress fires once at zero bytes, after every chunk, and once more
        with ``completed=True``. On failure a final event carries ``error``
        and the partial file is removed.
        """
        destination = dest_dir / LOCAL_ARCHIVE_NAME
        downloaded = 0
        total = remote.size_bytes

        def emit(**kwargs) -> None:
            if on_progress is not None:
                on_progress(DownloadProgress(file_name=remote.name, **kwargs))

        try:
            ensure_directory(dest_dir)
            if destination.exists():
                destination.unlink()

            LOGGER.info("Downloading %s to %s", remote.name, destination)
            with self.session.get(remote.download_url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                total = _content_length(response) or remote.size_bytes
                emit(downloaded_bytes=0, total_bytes=total)
                with destination.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if not chunk:
                            continue
                        handle.write(chunk)
                        downloaded += len(chunk)
                        emit(downloaded_bytes=downloaded, total_bytes=total)
        except (requests.RequestException, OSError) as exc:
            LOGGER.error("Download of %s failed: %s", remote.name, exc)
            emit(downloaded_bytes=downloaded, total_bytes=total, error=str(exc))
            self.delete_local_file(destination)
            return DownloadFailure(f"Download failed: {exc}")

        emit(downloaded_bytes=downloaded, total_bytes=total, completed=True)
        LOGGER.info("Downloaded %s (%s)", remote.name, format_bytes(downloaded))
        return DownloadSuccess(local_path=str(destination))

    @staticmethod
    def delete_local_file(path: Path) -> bool:
        """Delete ``path``; a file that is already gone counts as deleted."""
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("Failed to delete %s: %s", path, exc)
            return False
        return True

    @staticmethod
    def get_local_file_size(path: Path) -> int:
        try:
            return path.stat().st_size
        except OSError:
            return 0

    def close(self) -> None:
        self.session.close()
