"""Typed records describing the bundle a profile installs."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_relative(value: str) -> str:
    """Reject absolute paths and parent traversal in profile paths."""
    text = value.strip()
    if not text:
        raise ValueError("path must not be empty")
    posix = PurePosixPath(text.replace("\\", "/"))
    if posix.is_absolute() or ".." in posix.parts:
        raise ValueError(f"path must be relative to the working tree: {value!r}")
    return text


class ProfileModel(BaseModel):
    """Base Pydantic model with strict, immutable field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class RepositorySpec(ProfileModel):
    """Where releases of the bundle are published."""

    owner: str
    name: str
    api_host: str = "api.github.com"
    archive_host: str = "github.com"
    archive_format: Literal["tar.gz", "zip"] = "tar.gz"

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def latest_release_url(self) -> str:
        return f"https://{self.api_host}/repos/{self.owner}/{self.name}/releases/latest"

    @property
    def releases_page(self) -> str:
        return f"https://{self.archive_host}/{self.owner}/{self.name}/releases"

    def archive_url(self, version: str) -> str:
        return (
            f"https://{self.archive_host}/{self.owner}/{self.name}"
            f"/archive/refs/tags/{version}.{self.archive_format}"
        )


class SettingsFlag(ProfileModel):
    """Single key that must hold ``value`` inside ``section`` of a JSON file."""

    path: str
    section: str = "env"
    key: str
    value: str = "1"

    @field_validator("path")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        return _require_relative(value)


class ToolRequirement(ProfileModel):
    """Executable that must be on PATH, with an install hint."""

    name: str
    hint: str = ""


class PrerequisiteSpec(ProfileModel):
    """External ticket subsystem the bundle's workflow files depend on."""

    name: str
    markers: List[str] = Field(min_length=1)
    init_command: List[str] = Field(min_length=1)
    required_tools: List[ToolRequirement] = Field(default_factory=list)
    conflicting_files: List[str] = Field(default_factory=list)
    hooks_command: List[str] = Field(default_factory=list)
    hooks_summary: str = ""
    uninitialised_hint: str = ""

    @field_validator("markers", "conflicting_files")
    @classmethod
    def _relative_paths(cls, values: List[str]) -> List[str]:
        return [_require_relative(value) for value in values]

    @property
    def init_display(self) -> str:
        return " ".join(self.init_command)


class ToolCheck(ProfileModel):
    """Post-install diagnostic: satisfied when any listed tool is on PATH."""

    any_of: List[str] = Field(min_length=1)
    message: str


class BundleProfile(ProfileModel):
    """Versioned description of what the installer reconciles and how."""

    repository: RepositorySpec
    version_file: str = ".starterpack-version"
    manifest: List[str] = Field(min_length=1)
    commit_paths: List[str] = Field(default_factory=list)
    hooks_dir: str | None = None
    settings: SettingsFlag | None = None
    prerequisite: PrerequisiteSpec | None = None
    post_install_checks: List[ToolCheck] = Field(default_factory=list)
    ready_hint: str = "Ready to go."

    @field_validator("version_file")
    @classmethod
    def _relative_version_file(cls, value: str) -> str:
        return _require_relative(value)

    @field_validator("manifest")
    @classmethod
    def _relative_manifest(cls, values: List[str]) -> List[str]:
        cleaned = [_require_relative(value) for value in values]
        seen: set[str] = set()
        duplicates: list[str] = []
        for value in cleaned:
            if value in seen:
                duplicates.append(value)
            seen.add(value)
        if duplicates:
            raise ValueError(f"duplicate manifest entries: {', '.join(duplicates)}")
        return cleaned

    @field_validator("commit_paths")
    @classmethod
    def _relative_commit_paths(cls, values: List[str]) -> List[str]:
        return [_require_relative(value) for value in values]

    @field_validator("hooks_dir")
    @classmethod
    def _relative_hooks_dir(cls, value: str | None) -> str | None:
        return _require_relative(value) if value is not None else None
