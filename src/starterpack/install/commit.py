"""Stage the bundle's paths and record them in a single commit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Sequence

from ..errors import CommitWarning
from ..tools.vcs import GitError, GitRepository

__all__ = ["CommitResult", "CommitStatus", "commit_message", "run_commit_gate"]

LOGGER = logging.getLogger(__name__)


class CommitStatus(str, Enum):
    COMMITTED = "committed"
    NOTHING_TO_COMMIT = "nothing"


@dataclass(slots=True)
class CommitResult:
    status: CommitStatus
    message: str | None = None
    sha: str | None = None
    staged: List[str] = field(default_factory=list)


def commit_message(version: str, *, upgrade: bool) -> str:
    if upgrade:
        return f"chore: upgrade starterpack to {version}"
    return f"chore: install starterpack {version}"


def _manual_commands(paths: Sequence[str], version: str, *, upgrade: bool) -> tuple[str, ...]:
    return (
        f"git add {' '.join(paths)}",
        f"git commit -m '{commit_message(version, upgrade=upgrade)}'",
    )


def run_commit_gate(
    repo: GitRepository,
    paths: Sequence[str],
    version: str,
    *,
    upgrade: bool,
) -> CommitResult:
    """Commit ``paths`` that exist on disk unless the index was already dirty.

    Raises :class:`CommitWarning`, carrying the manual commands, when
    pre-existing staged changes block the commit or the commit itself fails.
    """
    try:
        prior = repo.staged_paths()
    except GitError as error:
        raise CommitWarning(f"Skipping auto-commit: {error}") from error

    if prior:
        LOGGER.debug("Pre-existing staged paths: %s", prior)
        raise CommitWarning(
            "Skipping auto-commit: you have staged changes that predate this install.",
            commands=_manual_commands(paths, version, upgrade=upgrade),
        )

    for relative in paths:
        if not (repo.root / Path(relative)).exists():
            continue
        try:
            repo.add(relative)
        except GitError as error:
            LOGGER.debug("Not staging %s: %s", relative, error)

    try:
        staged = repo.staged_paths()
    except GitError as error:
        raise CommitWarning(f"Unable to inspect staged files: {error}") from error
    if not staged:
        return CommitResult(CommitStatus.NOTHING_TO_COMMIT)

    message = commit_message(version, upgrade=upgrade)
    try:
        sha = repo.commit(message)
    except GitError as error:
        LOGGER.debug("Commit failed: %s", error)
        raise CommitWarning(
            "git commit failed - commit manually",
            commands=_manual_commands(paths, version, upgrade=upgrade),
        ) from error
    return CommitResult(CommitStatus.COMMITTED, message=message, sha=sha, staged=staged)
