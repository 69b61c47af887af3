"""End-to-end install/upgrade run.

Order of operations:

1. Validate a literal version token (no I/O) and stop when it equals the
   installed-version marker, unless forced.
2. Probe the ticket subsystem; fail before any network call when it is
   missing and initialisation was not requested.
3. Resolve the version (network only for ``latest``) and compare it with the
   marker again; stop when equal unless forced.
4. Initialise the ticket subsystem if requested and needed.
5. Dry run: preview and stop.
6. Download and extract the release into a scratch directory that is
   removed on every exit path, reconcile the manifest, write the marker.
7. Best-effort tail: settings flag, hooks, auto-commit, prerequisite report.

Failures in steps 1-6 abort the run.  Everything after the marker is
written downgrades to ``[warn]`` lines.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

import typer

from ..config import InstallerConfig
from ..console import Console
from ..errors import CommitWarning, ConfigMergeWarning, HookWarning
from ..tools.archive import extract_archive
from ..tools.http import ReleaseClient
from ..tools.jsonpatch import JsonPatcher, default_patchers
from ..tools.runner import CommandRunner, SubprocessRunner
from ..tools.vcs import GitRepository
from .commit import CommitResult, CommitStatus, run_commit_gate
from .hooks import install_bundle_hooks, install_tracker_hooks
from .prereq import check_prerequisite, ensure_prerequisite, missing_prerequisites
from .reconcile import FileAction, ReconciliationOutcome, plan_manifest, reconcile_manifest
from .resolver import LATEST, resolve_version, validate_version
from .settings import MergeStatus, SettingsMergeResult, merge_settings_flag
from .state import read_installed_version, write_installed_version

__all__ = ["InstallReport", "Installer", "RunStatus"]

LOGGER = logging.getLogger(__name__)


class RunStatus(str, Enum):
    INSTALLED = "installed"
    UP_TO_DATE = "up-to-date"
    DRY_RUN = "dry-run"


@dataclass(slots=True)
class InstallReport:
    """Summary of one run, returned to the CLI and to tests."""

    status: RunStatus
    version: str
    previous: Optional[str] = None
    outcome: Optional[ReconciliationOutcome] = None
    settings: Optional[SettingsMergeResult] = None
    hooks: List[str] = field(default_factory=list)
    commit: Optional[CommitResult] = None
    warnings: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)

    @property
    def upgrade(self) -> bool:
        return self.previous is not None


class Installer:
    """Runs the install/upgrade flow for one :class:`InstallerConfig`."""

    def __init__(
        self,
        config: InstallerConfig,
        *,
        console: Optional[Console] = None,
        runner: Optional[CommandRunner] = None,
        client: Optional[ReleaseClient] = None,
        patchers: Optional[Sequence[JsonPatcher]] = None,
    ) -> None:
        self.config = config
        self.profile = config.profile
        self.workdir = config.workdir
        self.console = console or Console()
        self.runner = runner or SubprocessRunner()
        self.client = client or ReleaseClient(config.profile.repository, token=config.token)
        self.patchers = list(patchers) if patchers is not None else default_patchers(self.runner)

    # ------------------------------------------------------------------ phases
    def run(self) -> InstallReport:
        config = self.config
        spec = self.profile.prerequisite

        if config.version != LATEST:
            validate_version(config.version)
        previous = read_installed_version(config.version_marker)
        if previous == config.version and not config.force:
            return self._up_to_date(config.version, previous)
        if spec is not None:
            check_prerequisite(spec, self.workdir, allow_init=config.init_prerequisite)

        resolved = self._resolve()
        if previous == resolved and not config.force:
            return self._up_to_date(resolved, previous)
        report = InstallReport(status=RunStatus.INSTALLED, version=resolved, previous=previous)

        if previous:
            self.console.info(f"Upgrading from {previous} to {resolved}")
        else:
            self.console.info(f"Installing starterpack {resolved}")

        if spec is not None:
            ensure_prerequisite(spec, self.workdir, self.runner, self.console, dry_run=config.dry_run)

        if config.dry_run:
            self._preview()
            report.status = RunStatus.DRY_RUN
            return report

        report.outcome = self._fetch_and_reconcile(resolved)
        write_installed_version(config.version_marker, resolved)
        self.console.ok(self.profile.version_file)

        repo = GitRepository.open(self.workdir, runner=self.runner)
        self._merge_settings(report)
        self._install_hooks(repo, report)
        self._commit(repo, report)
        self._summarise(report)
        return report

    def _up_to_date(self, version: str, previous: Optional[str]) -> InstallReport:
        self.console.notice(f"Already at {version}. Use --force to reinstall.")
        return InstallReport(status=RunStatus.UP_TO_DATE, version=version, previous=previous)

    def _resolve(self) -> str:
        if self.config.version == LATEST:
            self.console.info("Resolving latest release...")
            resolved = resolve_version(LATEST, self.client)
            self.console.success(f"Latest release: {resolved}")
            return resolved
        return resolve_version(self.config.version, self.client)

    def _preview(self) -> None:
        self.console.blank()
        self.console.notice("[DRY RUN] Would install these files:")
        manifest = [*self.profile.manifest, self.profile.version_file]
        for entry in plan_manifest(manifest, self.workdir):
            if entry.action is FileAction.OVERWRITTEN:
                self.console.detail(f"[overwrite] {entry.path}", fg=typer.colors.YELLOW)
            else:
                self.console.detail(f"[create] {entry.path}", fg=typer.colors.GREEN)
        self.console.blank()
        self.console.notice("[DRY RUN] No files were written.")

    def _fetch_and_reconcile(self, version: str) -> ReconciliationOutcome:
        repository = self.profile.repository
        with tempfile.TemporaryDirectory(prefix="starterpack-") as scratch:
            scratch_root = Path(scratch)
            archive = scratch_root / f"{repository.name}-{version}.{repository.archive_format}"
            self.console.info(f"Downloading {repository.archive_url(version)}")
            self.client.download_archive(version, archive)

            self.console.info("Extracting...")
            source_root = extract_archive(archive, scratch_root / "extract")
            return reconcile_manifest(self.profile.manifest, source_root, self.workdir, self.console)

    # ---------------------------------------------------------- best effort
    def _warn(self, report: InstallReport, warning: Warning) -> None:
        message = str(warning)
        report.warnings.append(message)
        self.console.warn(message)
        for command in getattr(warning, "commands", ()):
            self.console.detail(f"    {command}", fg=typer.colors.CYAN)

    def _merge_settings(self, report: InstallReport) -> None:
        flag = self.profile.settings
        if flag is None:
            return
        try:
            result = merge_settings_flag(self.workdir, flag, self.patchers)
        except ConfigMergeWarning as warning:
            self._warn(report, warning)
            return
        report.settings = result
        label = {
            MergeStatus.CREATED: f"created: {flag.key} enabled",
            MergeStatus.ALREADY_SET: f"{flag.key} already enabled",
            MergeStatus.UPDATED: f"updated: {flag.key} enabled",
        }[result.status]
        self.console.ok(f"{flag.path} ({label})")

    def _install_hooks(self, repo: Optional[GitRepository], report: InstallReport) -> None:
        if repo is None:
            return
        spec = self.profile.prerequisite
        if spec is not None:
            try:
                install_tracker_hooks(repo, spec, self.console)
            except HookWarning as warning:
                self._warn(report, warning)
        if self.profile.hooks_dir:
            try:
                report.hooks = install_bundle_hooks(repo, self.workdir / self.profile.hooks_dir, self.console)
            except OSError as error:
                self._warn(report, HookWarning(f"could not install bundle hooks: {error}"))

    def _commit(self, repo: Optional[GitRepository], report: InstallReport) -> None:
        if self.config.no_commit:
            return
        if repo is None:
            self.console.skip("Not a git repository - skipping commit")
            return
        try:
            result = run_commit_gate(
                repo,
                self.profile.commit_paths,
                report.version,
                upgrade=report.upgrade,
            )
        except CommitWarning as warning:
            self._warn(report, warning)
            return
        report.commit = result
        if result.status is CommitStatus.COMMITTED:
            self.console.ok(f"Committed: {result.message}")
        else:
            self.console.ok("No changes to commit (files already up to date)")

    def _summarise(self, report: InstallReport) -> None:
        outcome = report.outcome or ReconciliationOutcome()
        self.console.blank()
        self.console.success(f"Installed starterpack {report.version} ({outcome.copied} files)")
        if outcome.skipped:
            self.console.notice(f"  {outcome.skipped} files skipped (not found in release)")
        self.console.blank()

        report.next_steps = missing_prerequisites(self.profile, self.workdir, self.runner)
        if report.next_steps:
            self.console.notice("Next steps:")
            for step in report.next_steps:
                self.console.detail(f"- {step}", fg=typer.colors.YELLOW)
        else:
            self.console.success(self.profile.ready_hint)
