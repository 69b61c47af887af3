"""Unpack release archives and locate their single top-level directory."""

from __future__ import annotations

import logging
import tarfile
import zipfile
from pathlib import Path

from ..errors import ExtractionError

__all__ = ["extract_archive", "find_single_root"]

LOGGER = logging.getLogger(__name__)


def extract_archive(archive: Path, destination: Path) -> Path:
    """Extract ``archive`` into a fresh ``destination`` and return its root folder.

    Source archives produced for a tag contain exactly one directory named
    after the repository and version (``starterpack-1.3.0/``).  Anything else
    is reported as :class:`ExtractionError`.
    """

    destination.mkdir(parents=True, exist_ok=False)
    try:
        if zipfile.is_zipfile(archive):
            _extract_zip(archive, destination)
        elif tarfile.is_tarfile(archive):
            with tarfile.open(archive, "r:*") as bundle:
                bundle.extractall(destination, filter="data")
        else:
            raise ExtractionError(f"Unsupported archive format: {archive.name}")
    except (tarfile.TarError, zipfile.BadZipFile) as error:
        raise ExtractionError(f"Archive extraction failed: {error}") from error

    root = find_single_root(destination)
    LOGGER.debug("Extracted %s to %s", archive.name, root)
    return root


def _extract_zip(archive: Path, destination: Path) -> None:
    base = destination.resolve()
    with zipfile.ZipFile(archive) as bundle:
        for member in bundle.namelist():
            target = (base / member).resolve()
            if target != base and base not in target.parents:
                raise ExtractionError(f"Archive member escapes extraction directory: {member}")
        bundle.extractall(destination)


def find_single_root(directory: Path) -> Path:
    """Return the only entry of ``directory``; it must be a directory."""

    entries = list(directory.iterdir())
    if len(entries) != 1 or not entries[0].is_dir():
        names = ", ".join(sorted(entry.name for entry in entries)) or "nothing"
        raise ExtractionError(
            f"Archive extraction failed: expected one root directory, found {names}."
        )
    return entries[0]
