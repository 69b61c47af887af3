"""Place lifecycle hooks into the repository's hooks directory."""

from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path
from typing import List

from ..console import Console
from ..errors import HookWarning
from ..schema import PrerequisiteSpec
from ..tools.vcs import GitRepository

__all__ = ["install_bundle_hooks", "install_tracker_hooks"]

LOGGER = logging.getLogger(__name__)


def install_tracker_hooks(repo: GitRepository, spec: PrerequisiteSpec, console: Console) -> bool:
    """Run the ticket tool's own hook installer when the tool is available.

    Returns ``False`` when there is nothing to run.  A failing command raises
    :class:`HookWarning`.
    """
    if not spec.hooks_command or repo.runner.which(spec.hooks_command[0]) is None:
        return False
    result = repo.runner.run(spec.hooks_command, cwd=repo.root)
    if result.returncode != 0:
        display = " ".join(spec.hooks_command[:3])
        raise HookWarning(f"{display} failed - run '{display}' manually")
    summary = f" ({spec.hooks_summary})" if spec.hooks_summary else ""
    console.ok(f"{spec.name} hooks installed{summary}")
    return True


def install_bundle_hooks(repo: GitRepository, source_dir: Path, console: Console) -> List[str]:
    """Copy every file in ``source_dir`` over the hooks of the same name.

    Silently does nothing when either directory is missing.
    """
    hooks_dir = repo.hooks_dir
    if hooks_dir is None or not source_dir.is_dir():
        return []

    installed: List[str] = []
    for hook in sorted(source_dir.iterdir()):
        if not hook.is_file():
            continue
        destination = hooks_dir / hook.name
        shutil.copyfile(hook, destination)
        mode = destination.stat().st_mode
        destination.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        LOGGER.debug("Installed hook %s", destination)
        console.ok(f".git/hooks/{hook.name} (starterpack override)")
        installed.append(hook.name)
    return installed
