"""Runtime configuration assembled once from defaults, environment and flags."""

from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from .errors import ConfigurationError
from .schema import BundleProfile

__all__ = [
    "DEFAULT_PROFILE_RESOURCE",
    "ENV_VARS",
    "InstallerConfig",
    "load_profile",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_PROFILE_RESOURCE = "bundle.yaml"

# Field name -> environment variable consulted when the flag is not passed.
ENV_VARS: Dict[str, str] = {
    "version": "STARTERPACK_VERSION",
    "dry_run": "STARTERPACK_DRYRUN",
    "force": "STARTERPACK_FORCE",
    "init_prerequisite": "STARTERPACK_INIT_BEADS",
    "no_commit": "STARTERPACK_NO_COMMIT",
    "token": "GITHUB_TOKEN",
}

_BOOLEAN_FIELDS = {"dry_run", "force", "init_prerequisite", "no_commit"}
_TRUTHY = {"1", "true", "yes", "on"}


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in _TRUTHY


def load_profile(path: Optional[Path] = None) -> BundleProfile:
    """Load and validate a bundle profile; defaults to the packaged one."""

    if path is None:
        source = resources.files("starterpack").joinpath("data", DEFAULT_PROFILE_RESOURCE)
        label = f"<package>/data/{DEFAULT_PROFILE_RESOURCE}"
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as error:
            raise ConfigurationError(f"Unable to read bundled profile: {error}") from error
    else:
        label = str(path)
        if not path.is_file():
            raise ConfigurationError(f"Profile not found: {path}")
        text = path.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as error:
        raise ConfigurationError(f"Failed to parse profile {label}: {error}") from error
    if not isinstance(data, dict):
        raise ConfigurationError(f"Profile {label} must be a mapping at the top level.")

    try:
        profile = BundleProfile.model_validate(data)
    except SchemaValidationError as error:
        raise ConfigurationError(f"Invalid profile {label}: {error}") from error
    LOGGER.debug("Loaded profile %s (%d manifest entries)", label, len(profile.manifest))
    return profile


class InstallerConfig(BaseModel):
    """Immutable settings for one installer run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: str = "latest"
    dry_run: bool = False
    force: bool = False
    init_prerequisite: bool = False
    no_commit: bool = False
    token: Optional[str] = None
    workdir: Path = Field(default_factory=Path.cwd)
    profile: BundleProfile

    @classmethod
    def resolve(
        cls,
        overrides: Mapping[str, Any],
        environ: Optional[Mapping[str, str]] = None,
        *,
        profile: Optional[BundleProfile] = None,
        workdir: Optional[Path] = None,
    ) -> "InstallerConfig":
        """Merge defaults, then ``environ``, then explicit ``overrides``.

        ``None`` in ``overrides`` means "flag not passed"; the environment
        value (if any) applies instead.
        """

        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for field_name, variable in ENV_VARS.items():
            raw = env.get(variable)
            if raw is None or raw == "":
                continue
            values[field_name] = _parse_bool(raw) if field_name in _BOOLEAN_FIELDS else raw.strip()

        for field_name, value in overrides.items():
            if field_name not in cls.model_fields:
                raise ConfigurationError(f"Unknown configuration field: {field_name}")
            if value is not None:
                values[field_name] = value

        if "profile" not in values:
            values["profile"] = profile if profile is not None else load_profile()
        if workdir is not None and "workdir" not in values:
            values["workdir"] = workdir
        if "workdir" in values:
            values["workdir"] = Path(values["workdir"]).resolve()
        return cls(**values)

    @property
    def version_marker(self) -> Path:
        return self.workdir / self.profile.version_file
