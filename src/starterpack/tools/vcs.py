"""Minimal git helpers
The helpers below provide just enough structure to inspect the index, stage
an explicit list of paths, commit, place hooks, and publish release tags.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Sequence

import subprocess

from .runner import CommandRunner, SubprocessRunner


class GitError(RuntimeError):
    """Raised when a git command fails or the repository cannot be used."""


_RELEASE_TAG_RE = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str, *, runner: CommandRunner | None = None) -> None:
        self.root = Path(root).resolve()
        self.runner: CommandRunner = runner or SubprocessRunner()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    @classmethod
    def open(cls, root: Path | str, *, runner: CommandRunner | None = None) -> "GitRepository | None":
        """Return a repository for ``root`` or ``None`` when it is not one."""

        try:
            return cls(root, runner=runner)
        except GitError:
            return None

    @classmethod
    def initialise(cls, root: Path | str, *, runner: CommandRunner | None = None) -> "GitRepository":
        """Initialise a new git repository at ``root`` with an initial commit."""

        path = Path(root).resolve()
        path.mkdir(parents=True, exist_ok=True)
        active = runner or SubprocessRunner()

        def _run(args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
            result = active.run(["git", *args], cwd=path)
            if check and result.returncode != 0:
                message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
                raise GitError(f"git {' '.join(args)} failed: {message}")
            return result

        _run(["init"])

        def _ensure_config(key: str, value: str) -> None:
            probe = _run(["config", "--get", key], check=False)
            if probe.returncode != 0 or not probe.stdout.strip():
                _run(["config", key, value])

        _ensure_config("user.email", "starterpack@example.com")
        _ensure_config("user.name", "Starterpack Installer")

        _run(["commit", "--allow-empty", "-m", "Initial commit"])

        return cls(path, runner=active)

    # ------------------------------------------------------------------ git IO
    def _run_git(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        result = self.runner.run(["git", *args], cwd=self.root)
        if check and result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
            raise GitError(f"git {' '.join(args)} failed: {message}")
        return result

    def git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Execute ``git`` with ``args`` relative to the repository root."""

        return self._run_git(list(args), check=check)

    @property
    def hooks_dir(self) -> Path | None:
        """Return the hooks directory of a plain ``.git`` directory, if present."""

        git_dir = self.root / ".git"
        if not git_dir.is_dir():
            return None
        hooks = git_dir / "hooks"
        return hooks if hooks.is_dir() else None

    # ------------------------------------------------------------------- index
    def staged_paths(self) -> List[str]:
        """Return the paths currently staged in the index."""

        result = self._run_git(["diff", "--cached", "--name-only"], check=False)
        if result.returncode != 0:
            message = result.stderr.strip() or "unable to read the index"
            raise GitError(f"git diff --cached failed: {message}")
        return [line for line in result.stdout.splitlines() if line.strip()]

    def add(self, *paths: str) -> None:
        """Stage ``paths``; raises :class:`GitError` when git refuses."""

        self._run_git(["add", "--", *paths], check=True)

    def commit(self, message: str) -> str:
        """Commit the index and return the new ``HEAD`` SHA."""

        commit = self._run_git(["commit", "-m", message], check=False)
        if commit.returncode != 0:
            output = commit.stderr.strip() or commit.stdout.strip() or "unknown git error"
            raise GitError(f"git commit failed: {output}")

        rev = self._run_git(["rev-parse", "HEAD"], check=True)
        return rev.stdout.strip()

    # ------------------------------------------------------------- repo status
    def _status_entries(self) -> List[tuple[str, Path]]:
        result = self._run_git(["status", "--porcelain"], check=True)
        entries: List[tuple[str, Path]] = []
        for line in result.stdout.splitlines():
            if not line:
                continue
            status = line[:2]
            raw_path = line[3:]
            if status[0] in {"R", "C"} and " -> " in raw_path:
                raw_path = raw_path.split(" -> ", 1)[1]
            status_clean = status.strip() or status
            entries.append((status_clean, Path(raw_path.strip())))
        return entries

    def working_tree_changes(self, *, include_untracked: bool = True) -> List[Path]:
        """Return the set of paths with pending modifications."""

        paths = {
            path
            for status, path in self._status_entries()
            if include_untracked or status != "??"
        }
        return sorted(paths, key=lambda item: item.as_posix())

    def is_clean(self, *, include_untracked: bool = True) -> bool:
        """Return ``True`` when the working tree has no pending changes."""

        return not self.working_tree_changes(include_untracked=include_untracked)

    def ensure_clean(self, *, include_untracked: bool = True) -> None:
        """Raise :class:`GitError` if the working tree is not clean."""

        if not self.is_clean(include_untracked=include_untracked):
            raise GitError("Working tree has pending changes.")

    # ------------------------------------------------------------------ tags
    def release_tags(self) -> List[tuple[int, int, int]]:
        """Return ``vX.Y.Z`` tags as integer triples, highest first."""

        result = self._run_git(["tag", "--list", "v*"], check=True)
        versions: List[tuple[int, int, int]] = []
        for line in result.stdout.splitlines():
            match = _RELEASE_TAG_RE.match(line.strip())
            if match:
                versions.append((int(match.group(1)), int(match.group(2)), int(match.group(3))))
        return sorted(versions, reverse=True)

    def create_tag(self, name: str, message: str) -> None:
        """Create an annotated tag at ``HEAD``."""

        self._run_git(["tag", "-a", name, "-m", message], check=True)

    def push(self, remote: str, ref: str) -> None:
        """Push ``ref`` to ``remote``."""

        self._run_git(["push", remote, ref], check=True)


__all__ = ["GitError", "GitRepository"]
