"""Zip archiving of published folders.

``Archiver.archive(folder, name)`` writes ``<destination>/<name>.zip``
containing the contents of ``folder`` (paths relative to it), replacing
any existing zip, and emits an ``artifact.upload`` command for it.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

from buildspine.core.logging import get_logger
from buildspine.vso import CiReporter

logger = get_logger(__name__)


def zip_folder(folder: Path, zip_path: Path) -> int:
    """Write every file under ``folder`` into ``zip_path``. Returns the file count."""
    count = 0
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(folder.rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(folder).as_posix())
                count += 1
    return count


class Archiver:
    """Zips folders into a destination directory.

    Parameters
    ----------
    destination
        Directory receiving the zips. Created on first use if missing.
    reporter
        Receives one upload command per zip.
    """

    def __init__(self, destination: Path, reporter: CiReporter) -> None:
        self.destination = destination
        self.reporter = reporter

    def _ensure_destination(self) -> None:
        if not self.destination.is_dir():
            logger.warning("archive.destination_created", destination=str(self.destination))
            self.destination.mkdir(parents=True, exist_ok=True)

    def archive(self, folder: Path, name: str) -> Path:
        """Zip ``folder`` to ``<destination>/<name>.zip`` and announce the upload."""
        self._ensure_destination()
        zip_path = self.destination / f"{name}.zip"
        if zip_path.exists():
            zip_path.unlink()
        files = zip_folder(folder, zip_path)
        logger.info("archive.written", name=name, zip=str(zip_path), files=files)
        self.reporter.upload_artifact(zip_path.resolve(), name)
        return zip_path
