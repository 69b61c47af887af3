"""Installed-version marker persisted in the working tree."""

from __future__ import annotations

from pathlib import Path

__all__ = ["read_installed_version", "write_installed_version"]


def read_installed_version(marker: Path) -> str | None:
    """Return the recorded version, or ``None`` when nothing is installed."""
    if not marker.is_file():
        return None
    value = marker.read_text(encoding="utf-8").strip()
    return value or None


def write_installed_version(marker: Path, version: str) -> None:
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.write_text(version, encoding="utf-8")
