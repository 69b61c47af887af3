"""Test doubles for the runner, the release API and published archives."""

from __future__ import annotations

import io
import shutil
import subprocess
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from starterpack.schema import BundleProfile
from starterpack.tools.http import HttpResponse
from starterpack.tools.runner import SubprocessRunner

HOOK_SCRIPT = "#!/bin/sh\nexit 0\n"


@dataclass
class FakeRunner:
    """Records non-git commands and answers them from a script.

    ``returncodes`` and ``effects`` are keyed by the full command line;
    ``outputs`` by program name.  ``git`` is always executed for real so
    repositories behave normally.
    """

    tools: set[str] = field(default_factory=set)
    returncodes: Dict[str, int] = field(default_factory=dict)
    effects: Dict[str, Callable[[Optional[Path]], None]] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)
    calls: List[List[str]] = field(default_factory=list)
    inputs: List[Optional[str]] = field(default_factory=list)
    _real: SubprocessRunner = field(default_factory=SubprocessRunner)

    def which(self, name: str) -> str | None:
        if name == "git":
            return shutil.which("git")
        return f"/usr/local/bin/{name}" if name in self.tools else None

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        command = list(args)
        if command and command[0] == "git":
            return self._real.run(command, cwd=cwd, input=input, capture=capture)
        self.calls.append(command)
        self.inputs.append(input)
        key = " ".join(command)
        effect = self.effects.get(key)
        if effect is not None:
            effect(cwd)
        stdout = self.outputs.get(command[0], "") if command else ""
        return subprocess.CompletedProcess(command, self.returncodes.get(key, 0), stdout, "")

    def ran(self, command: str) -> bool:
        return any(" ".join(call) == command for call in self.calls)


@dataclass
class FakeTransport:
    """Serves canned responses per URL and records every request."""

    routes: Dict[str, HttpResponse] = field(default_factory=dict)
    failure: Optional[OSError] = None
    requests: List[tuple[str, Dict[str, str]]] = field(default_factory=list)

    def __call__(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        self.requests.append((url, dict(headers)))
        if self.failure is not None:
            raise self.failure
        return self.routes.get(url, HttpResponse(status=404, body=b"Not Found"))

    @property
    def urls(self) -> List[str]:
        return [url for url, _ in self.requests]


def build_tarball(root_name: str, files: Mapping[str, str]) -> bytes:
    """Return a ``.tar.gz`` with every file nested under ``root_name/``."""

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as bundle:
        for relative, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{root_name}/{relative}")
            info.size = len(data)
            info.mode = 0o755 if "/hooks/" in relative else 0o644
            bundle.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def release_files(profile: BundleProfile, *, omit: Sequence[str] = ()) -> Dict[str, str]:
    """Contents for every manifest entry, hooks being harmless shell scripts."""

    files: Dict[str, str] = {}
    for entry in profile.manifest:
        if entry in omit:
            continue
        if profile.hooks_dir and entry.startswith(f"{profile.hooks_dir}/"):
            files[entry] = HOOK_SCRIPT
        elif entry == (profile.settings.path if profile.settings else None):
            files[entry] = '{\n  "permissions": {"allow": []}\n}\n'
        else:
            files[entry] = f"release copy of {entry}\n"
    return files


@dataclass
class ReleaseServer:
    """Publishes fake releases of the bundle on a :class:`FakeTransport`."""

    profile: BundleProfile
    transport: FakeTransport

    def publish(
        self,
        version: str,
        files: Optional[Mapping[str, str]] = None,
        *,
        latest: bool = True,
    ) -> Dict[str, str]:
        repository = self.profile.repository
        contents = dict(files) if files is not None else release_files(self.profile)
        archive = build_tarball(f"{repository.name}-{version.lstrip('v')}", contents)
        self.transport.routes[repository.archive_url(version)] = HttpResponse(200, archive)
        if latest:
            body = ('{"tag_name": "%s"}' % version).encode("utf-8")
            self.transport.routes[repository.latest_release_url] = HttpResponse(200, body)
        return contents
