from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from starterpack.config import InstallerConfig, load_profile  # noqa: E402
from starterpack.schema import BundleProfile  # noqa: E402
from starterpack.tools.vcs import GitRepository  # noqa: E402
from support import FakeRunner, FakeTransport, ReleaseServer  # noqa: E402


@pytest.fixture()
def profile() -> BundleProfile:
    return load_profile()


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner(tools={"bd", "dolt", "claude", "python3"})


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def release_server(profile: BundleProfile, transport: FakeTransport) -> ReleaseServer:
    return ReleaseServer(profile=profile, transport=transport)


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    """A git repository whose ticket subsystem is already initialised."""

    root = tmp_path / "project"
    GitRepository.initialise(root)
    beads = root / ".beads"
    beads.mkdir()
    (beads / "config.yaml").write_text("issue-prefix: demo\n", encoding="utf-8")
    return root


@pytest.fixture()
def make_config(profile: BundleProfile, project: Path) -> Callable[..., InstallerConfig]:
    """Build an :class:`InstallerConfig` isolated from the real environment."""

    def _make(**overrides: object) -> InstallerConfig:
        workdir = overrides.pop("workdir", project)
        return InstallerConfig.resolve(overrides, environ={}, profile=profile, workdir=workdir)

    return _make
