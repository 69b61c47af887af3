"""Ticket-subsystem gate run before installation and the final tool report."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..console import Console
from ..errors import PrerequisiteError
from ..schema import BundleProfile, PrerequisiteSpec
from ..tools.runner import CommandRunner

__all__ = [
    "check_prerequisite",
    "ensure_prerequisite",
    "is_initialised",
    "missing_prerequisites",
]

LOGGER = logging.getLogger(__name__)


def is_initialised(spec: PrerequisiteSpec, workdir: Path) -> bool:
    """Return ``True`` when any marker file of ``spec`` exists."""
    return any((workdir / marker).is_file() for marker in spec.markers)


def check_prerequisite(spec: PrerequisiteSpec, workdir: Path, *, allow_init: bool) -> bool:
    """Side-effect-free probe; fails fast when initialisation is not allowed.

    Returns whether the subsystem is already initialised.
    """
    if is_initialised(spec, workdir):
        return True
    if not allow_init:
        raise PrerequisiteError(
            f"{spec.name} is not initialized in this project. "
            f"The starterpack requires {spec.name} for ticket tracking.",
            remediation="Re-run with --init-beads (or STARTERPACK_INIT_BEADS=1) to auto-initialize.",
        )
    return False


def ensure_prerequisite(
    spec: PrerequisiteSpec,
    workdir: Path,
    runner: CommandRunner,
    console: Console,
    *,
    dry_run: bool,
) -> None:
    """Initialise the subsystem with its own CLI when it is missing.

    Every required tool must resolve on PATH first.  After a successful
    init the scaffold files the tool creates that compete with the bundle's
    own instructions are deleted.
    """
    if is_initialised(spec, workdir):
        return

    for tool in spec.required_tools:
        if runner.which(tool.name) is None:
            raise PrerequisiteError(
                f"--init-beads was specified but '{tool.name}' was not found on PATH.",
                remediation=tool.hint or None,
            )

    if dry_run:
        console.notice(f"[DRY RUN] Would run: {spec.init_display} ({spec.name} not yet initialized)")
        return

    console.detail(f"Initializing {spec.name}...")
    result = runner.run(spec.init_command, cwd=workdir)
    if result.returncode != 0:
        LOGGER.debug("%s output:\n%s\n%s", spec.init_display, result.stdout, result.stderr)
        raise PrerequisiteError(
            f"{spec.init_display} failed (exit {result.returncode}).",
            remediation=f"Run '{spec.init_display}' manually, then re-run the installer.",
        )
    console.ok(f"{spec.name} initialized successfully.")

    for relative in spec.conflicting_files:
        candidate = workdir / relative
        if candidate.is_file():
            candidate.unlink()
            LOGGER.debug("Removed conflicting scaffold file %s", relative)


def missing_prerequisites(profile: BundleProfile, workdir: Path, runner: CommandRunner) -> List[str]:
    """Return one message per missing tool or uninitialised subsystem."""
    warnings: List[str] = []
    for check in profile.post_install_checks:
        if not any(runner.which(tool) for tool in check.any_of):
            warnings.append(check.message)

    spec = profile.prerequisite
    if spec is not None and not is_initialised(spec, workdir):
        warnings.append(spec.uninitialised_hint or f"{spec.name} is not initialized.")
    return warnings
