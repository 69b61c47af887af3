"""Injectable command execution so external binaries can be faked in tests."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

__all__ = ["CommandRunner", "SubprocessRunner"]

LOGGER = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Capability to locate and execute external tools."""

    def which(self, name: str) -> str | None:
        """Return the resolved executable path for ``name`` or ``None``."""

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Execute ``args`` and return the completed process without raising."""


class SubprocessRunner:
    """Default runner backed by :mod:`subprocess` and :func:`shutil.which`."""

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        command = list(args)
        LOGGER.debug("run: %s (cwd=%s)", " ".join(command), cwd)
        process = subprocess.run(  # noqa: S603 - commands come from the bundle profile
            command,
            cwd=cwd,
            input=input.encode("utf-8") if input is not None else None,
            capture_output=capture,
            check=False,
        )
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
