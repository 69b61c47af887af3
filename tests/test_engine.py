from __future__ import annotations

import io
import json
import tarfile
import tempfile
from pathlib import Path
from typing import Callable

import pytest

from starterpack.config import InstallerConfig
from starterpack.console import Console
from starterpack.errors import DownloadError, ExtractionError, PrerequisiteError, ValidationError
from starterpack.install import Installer, InstallReport, RunStatus
from starterpack.install.commit import CommitStatus
from starterpack.install.settings import MergeStatus
from starterpack.schema import BundleProfile
from starterpack.tools.http import HttpResponse, ReleaseClient
from starterpack.tools.vcs import GitRepository

from support import FakeRunner, FakeTransport, ReleaseServer, release_files

MakeConfig = Callable[..., InstallerConfig]


@pytest.fixture()
def scratch(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect temporary directories so cleanup can be observed."""

    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def _run(
    config: InstallerConfig,
    runner: FakeRunner,
    transport: FakeTransport,
    console: Console | None = None,
) -> InstallReport:
    client = ReleaseClient(config.profile.repository, transport=transport)
    installer = Installer(config, console=console or Console(color=False), runner=runner, client=client)
    return installer.run()


def _last_subject(root: Path) -> str:
    repo = GitRepository(root)
    return repo.git("log", "-1", "--format=%s").stdout.strip()


def test_fresh_install_of_latest(
    make_config: MakeConfig,
    project: Path,
    profile: BundleProfile,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
    scratch: Path,
) -> None:
    files = release_server.publish("v1.3.0")
    console = Console(color=False)

    report = _run(make_config(), fake_runner, transport, console)

    assert report.status is RunStatus.INSTALLED
    assert report.version == "v1.3.0"
    assert report.previous is None
    assert report.outcome is not None
    assert report.outcome.copied == len(profile.manifest)
    assert report.outcome.skipped == 0
    assert (project / ".starterpack-version").read_bytes() == b"v1.3.0"
    assert (project / "CLAUDE.md").read_text(encoding="utf-8") == files["CLAUDE.md"]

    settings = json.loads((project / ".claude" / "settings.local.json").read_text(encoding="utf-8"))
    assert settings["env"]["CLAUDE_CODE_EXPERIMENTAL_AGENT_TEAMS"] == "1"
    assert settings["permissions"] == {"allow": []}
    assert report.settings is not None
    assert report.settings.status is MergeStatus.UPDATED

    assert report.commit is not None
    assert report.commit.status is CommitStatus.COMMITTED
    subject = _last_subject(project)
    assert "install" in subject and "v1.3.0" in subject

    assert fake_runner.ran("bd hooks install --force")
    assert report.warnings == []
    assert report.next_steps == []
    assert console.lines[0] == "Resolving latest release..."
    assert "Latest release: v1.3.0" in console.lines
    assert "Installing starterpack v1.3.0" in console.lines
    assert f"Installed starterpack v1.3.0 ({len(profile.manifest)} files)" in console.lines
    assert profile.ready_hint in console.lines
    assert list(scratch.iterdir()) == []


def test_matching_marker_is_a_no_op(
    make_config: MakeConfig,
    project: Path,
    profile: BundleProfile,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    (project / ".starterpack-version").write_text("v1.3.0\n", encoding="utf-8")
    console = Console(color=False)

    report = _run(make_config(), fake_runner, transport, console)

    assert report.status is RunStatus.UP_TO_DATE
    assert transport.urls == [profile.repository.latest_release_url]
    assert not (project / "CLAUDE.md").exists()
    assert console.lines[-1] == "Already at v1.3.0. Use --force to reinstall."
    assert fake_runner.calls == []


def test_literal_version_matching_marker_needs_no_network(
    make_config: MakeConfig,
    project: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
) -> None:
    (project / ".starterpack-version").write_text("v1.3.0", encoding="utf-8")

    report = _run(make_config(version="v1.3.0"), fake_runner, transport)

    assert report.status is RunStatus.UP_TO_DATE
    assert transport.requests == []


def test_literal_version_matching_marker_skips_prerequisite_probe(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
) -> None:
    workdir = tmp_path / "bare"
    workdir.mkdir()
    (workdir / ".starterpack-version").write_text("v1.3.0", encoding="utf-8")
    console = Console(color=False)

    report = _run(make_config(workdir=workdir, version="v1.3.0"), fake_runner, transport, console)

    assert report.status is RunStatus.UP_TO_DATE
    assert console.lines == ["Already at v1.3.0. Use --force to reinstall."]
    assert transport.requests == []


def test_missing_prerequisite_fails_before_network(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    workdir = tmp_path / "bare"
    workdir.mkdir()

    with pytest.raises(PrerequisiteError) as excinfo:
        _run(make_config(workdir=workdir), fake_runner, transport)

    assert "--init-beads" in (excinfo.value.remediation or "")
    assert transport.requests == []
    assert list(workdir.iterdir()) == []


def test_invalid_version_fails_before_any_io(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
) -> None:
    workdir = tmp_path / "bare"
    workdir.mkdir()

    with pytest.raises(ValidationError, match="Invalid version format: 1.3"):
        _run(make_config(version="1.3", workdir=workdir), fake_runner, transport)
    assert transport.requests == []


def test_init_prerequisite_runs_tool_and_removes_conflicts(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    workdir = tmp_path / "fresh"
    GitRepository.initialise(workdir)

    def fake_init(cwd: Path | None) -> None:
        assert cwd is not None
        (cwd / ".beads").mkdir()
        (cwd / ".beads" / "config.yaml").write_text("issue-prefix: fresh\n", encoding="utf-8")
        (cwd / "AGENTS.md").write_text("competing instructions\n", encoding="utf-8")

    fake_runner.effects["bd init"] = fake_init

    report = _run(make_config(workdir=workdir, init_prerequisite=True), fake_runner, transport)

    assert report.status is RunStatus.INSTALLED
    assert fake_runner.calls[0] == ["bd", "init"]
    assert not (workdir / "AGENTS.md").exists()
    assert (workdir / ".beads" / "config.yaml").is_file()


def test_init_prerequisite_requires_every_tool(
    make_config: MakeConfig,
    tmp_path: Path,
    transport: FakeTransport,
) -> None:
    workdir = tmp_path / "fresh"
    workdir.mkdir()
    runner = FakeRunner(tools={"bd"})

    with pytest.raises(PrerequisiteError, match="'dolt' was not found") as excinfo:
        _run(make_config(workdir=workdir, version="v1.3.0", init_prerequisite=True), runner, transport)

    assert "dolthub/dolt" in (excinfo.value.remediation or "")
    assert runner.calls == []
    assert transport.requests == []


def test_failed_init_is_fatal(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
) -> None:
    workdir = tmp_path / "fresh"
    workdir.mkdir()
    fake_runner.returncodes["bd init"] = 2

    with pytest.raises(PrerequisiteError, match=r"bd init failed \(exit 2\)"):
        _run(make_config(workdir=workdir, version="v1.3.0", init_prerequisite=True), fake_runner, transport)
    assert not (workdir / ".starterpack-version").exists()


def test_dry_run_writes_nothing(
    make_config: MakeConfig,
    project: Path,
    profile: BundleProfile,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    (project / "CLAUDE.md").write_text("local\n", encoding="utf-8")
    console = Console(color=False)

    report = _run(make_config(dry_run=True), fake_runner, transport, console)

    assert report.status is RunStatus.DRY_RUN
    assert transport.urls == [profile.repository.latest_release_url]
    assert not (project / ".starterpack-version").exists()
    assert not (project / ".starterpack").exists()
    assert (project / "CLAUDE.md").read_text(encoding="utf-8") == "local\n"
    assert "[DRY RUN] Would install these files:" in console.lines
    assert "  [overwrite] CLAUDE.md" in console.lines
    assert "  [create] .gitattributes" in console.lines
    assert "  [create] .starterpack-version" in console.lines
    assert console.lines[-1] == "[DRY RUN] No files were written."


def test_dry_run_with_init_only_previews_the_tool(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
) -> None:
    workdir = tmp_path / "fresh"
    workdir.mkdir()
    console = Console(color=False)

    _run(
        make_config(workdir=workdir, version="v1.3.0", dry_run=True, init_prerequisite=True),
        fake_runner,
        transport,
        console,
    )

    assert fake_runner.calls == []
    assert "[DRY RUN] Would run: bd init (Beads not yet initialized)" in console.lines
    assert list(workdir.iterdir()) == []


def test_forced_reinstall_restores_local_edits(
    make_config: MakeConfig,
    project: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    files = release_server.publish("v1.3.0")
    _run(make_config(), fake_runner, transport)
    (project / "CLAUDE.md").write_text("hand edited\n", encoding="utf-8")

    report = _run(make_config(force=True), fake_runner, transport)

    assert report.status is RunStatus.INSTALLED
    assert report.previous == "v1.3.0"
    assert (project / "CLAUDE.md").read_text(encoding="utf-8") == files["CLAUDE.md"]
    assert report.commit is not None
    assert report.commit.status is CommitStatus.NOTHING_TO_COMMIT


def test_upgrade_skips_entries_missing_from_release(
    make_config: MakeConfig,
    project: Path,
    profile: BundleProfile,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    _run(make_config(), fake_runner, transport)

    newer = release_files(profile, omit=[".github/scripts/beads-sync.sh"])
    newer["CLAUDE.md"] = "v1.4.0 instructions\n"
    release_server.publish("v1.4.0", newer)
    console = Console(color=False)

    report = _run(make_config(), fake_runner, transport, console)

    assert report.upgrade
    assert "Upgrading from v1.3.0 to v1.4.0" in console.lines
    assert report.outcome is not None
    assert report.outcome.skipped == 1
    assert "  [skip] .github/scripts/beads-sync.sh (not in release)" in console.lines
    assert (project / "CLAUDE.md").read_text(encoding="utf-8") == "v1.4.0 instructions\n"
    assert (project / ".starterpack-version").read_text(encoding="utf-8") == "v1.4.0"
    assert _last_subject(project) == "chore: upgrade starterpack to v1.4.0"


def test_download_failure_leaves_tree_untouched(
    make_config: MakeConfig,
    project: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    scratch: Path,
) -> None:
    with pytest.raises(DownloadError) as excinfo:
        _run(make_config(version="v9.9.9"), fake_runner, transport)

    assert "github.com/Jtonna/starterpack/releases" in (excinfo.value.remediation or "")
    assert not (project / ".starterpack-version").exists()
    assert not (project / "CLAUDE.md").exists()
    assert list(scratch.iterdir()) == []


def test_malformed_archive_is_fatal_and_cleaned_up(
    make_config: MakeConfig,
    project: Path,
    profile: BundleProfile,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    scratch: Path,
) -> None:
    # Two top-level directories instead of the single release root.
    transport.routes[profile.repository.archive_url("v1.3.0")] = HttpResponse(200, _two_roots())

    with pytest.raises(ExtractionError):
        _run(make_config(version="v1.3.0"), fake_runner, transport)

    assert not (project / "CLAUDE.md").exists()
    assert list(scratch.iterdir()) == []


def _two_roots() -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as bundle:
        for name in ("starterpack-1.3.0/CLAUDE.md", "extra/CLAUDE.md"):
            info = tarfile.TarInfo(name)
            info.size = 1
            bundle.addfile(info, io.BytesIO(b"x"))
    return buffer.getvalue()


def test_outside_git_repository_skips_commit(
    make_config: MakeConfig,
    tmp_path: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    workdir = tmp_path / "plain"
    (workdir / ".beads").mkdir(parents=True)
    (workdir / ".beads" / "metadata.json").write_text("{}", encoding="utf-8")
    console = Console(color=False)

    report = _run(make_config(workdir=workdir), fake_runner, transport, console)

    assert report.status is RunStatus.INSTALLED
    assert report.commit is None
    assert "  [skip] Not a git repository - skipping commit" in console.lines
    assert not fake_runner.ran("bd hooks install --force")


def test_no_commit_leaves_history_alone(
    make_config: MakeConfig,
    project: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    before = _last_subject(project)

    report = _run(make_config(no_commit=True), fake_runner, transport)

    assert report.commit is None
    assert _last_subject(project) == before


def test_staged_changes_downgrade_commit_to_warning(
    make_config: MakeConfig,
    project: Path,
    fake_runner: FakeRunner,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    repo = GitRepository(project)
    (project / "wip.txt").write_text("wip\n", encoding="utf-8")
    repo.add("wip.txt")
    console = Console(color=False)

    report = _run(make_config(), fake_runner, transport, console)

    assert report.status is RunStatus.INSTALLED
    assert report.commit is None
    assert len(report.warnings) == 1
    assert any(line.startswith("  [warn] Skipping auto-commit") for line in console.lines)
    assert any("git commit -m 'chore: install starterpack v1.3.0'" in line for line in console.lines)
    assert (project / ".starterpack-version").read_text(encoding="utf-8") == "v1.3.0"
    assert repo.staged_paths() == ["wip.txt"]


def test_missing_tools_are_listed_as_next_steps(
    make_config: MakeConfig,
    project: Path,
    transport: FakeTransport,
    release_server: ReleaseServer,
) -> None:
    release_server.publish("v1.3.0")
    runner = FakeRunner()
    console = Console(color=False)

    report = _run(make_config(), runner, transport, console)

    assert report.status is RunStatus.INSTALLED
    assert len(report.next_steps) == 4
    assert report.next_steps[0].startswith("Beads CLI (bd) not found")
    assert "Next steps:" in console.lines
    assert runner.calls == []
