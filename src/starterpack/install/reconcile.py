"""Mirror manifest-listed files from an extracted release into the working tree."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Sequence

from ..console import Console

__all__ = [
    "FileAction",
    "ReconciliationEntry",
    "ReconciliationOutcome",
    "plan_manifest",
    "reconcile_manifest",
]

LOGGER = logging.getLogger(__name__)


class FileAction(str, Enum):
    """What happened (or would happen) to one manifest entry."""

    CREATED = "created"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"


@dataclass(slots=True)
class ReconciliationEntry:
    path: str
    action: FileAction


@dataclass(slots=True)
class ReconciliationOutcome:
    """Per-run counters plus the per-file classification."""

    entries: List[ReconciliationEntry] = field(default_factory=list)

    @property
    def copied(self) -> int:
        return sum(1 for entry in self.entries if entry.action is not FileAction.SKIPPED)

    @property
    def skipped(self) -> int:
        return sum(1 for entry in self.entries if entry.action is FileAction.SKIPPED)

    def paths(self, action: FileAction) -> List[str]:
        return [entry.path for entry in self.entries if entry.action is action]


def plan_manifest(manifest: Sequence[str], workdir: Path) -> List[ReconciliationEntry]:
    """Classify each entry as create/overwrite without touching the disk."""
    return [
        ReconciliationEntry(
            path=relative,
            action=FileAction.OVERWRITTEN if (workdir / relative).exists() else FileAction.CREATED,
        )
        for relative in manifest
    ]


def reconcile_manifest(
    manifest: Sequence[str],
    source_root: Path,
    workdir: Path,
    console: Console,
) -> ReconciliationOutcome:
    """Copy every manifest file present under ``source_root`` into ``workdir``.

    Entries missing from the release are skipped with a diagnostic; the
    manifest may list files that older or newer releases do not ship.
    Filesystem errors while writing propagate as :class:`OSError`.
    """
    outcome = ReconciliationOutcome()
    for relative in manifest:
        source = source_root / relative
        destination = workdir / relative

        if not source.is_file():
            console.skip(f"{relative} (not in release)")
            outcome.entries.append(ReconciliationEntry(relative, FileAction.SKIPPED))
            continue

        existed = destination.exists()
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy(source, destination)
        action = FileAction.OVERWRITTEN if existed else FileAction.CREATED
        LOGGER.debug("%s %s", action.value, relative)
        console.ok(relative)
        outcome.entries.append(ReconciliationEntry(relative, action))
    return outcome
