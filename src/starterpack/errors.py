"""Error and warning taxonomy shared by the installer steps.

Fatal conditions derive from :class:`InstallerError` and abort the run with a
non-zero exit.  Degraded-but-usable outcomes derive from
:class:`InstallerWarning`; the engine reports them as ``[warn]`` lines and
keeps going because the files already written remain valid.
"""

from __future__ import annotations

__all__ = [
    "CommitWarning",
    "ConfigMergeWarning",
    "ConfigurationError",
    "DownloadError",
    "ExtractionError",
    "HookWarning",
    "InstallerError",
    "InstallerWarning",
    "NetworkError",
    "NotFoundError",
    "PrerequisiteError",
    "RateLimitError",
    "ResolutionError",
    "ValidationError",
]


class InstallerError(Exception):
    """Base class for fatal installer failures."""

    def __init__(self, message: str, *, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class ConfigurationError(InstallerError):
    """Raised when the bundle profile or runtime configuration is unusable."""


class ValidationError(InstallerError):
    """Raised when a requested version token is malformed."""


class ResolutionError(InstallerError):
    """Raised when the ``latest`` token cannot be turned into a release tag."""


class RateLimitError(ResolutionError):
    """The release API answered 403; usually an exhausted anonymous quota."""


class NotFoundError(ResolutionError):
    """The release API answered 404; no release has been published."""


class NetworkError(ResolutionError):
    """Transport failure or unparseable response from the release API."""


class DownloadError(InstallerError):
    """Raised when the release archive cannot be downloaded."""


class PrerequisiteError(InstallerError):
    """Raised when the ticket subsystem is missing or cannot be initialised."""


class ExtractionError(InstallerError):
    """Raised when the release archive does not have the expected shape."""


class InstallerWarning(UserWarning):
    """Base class for non-fatal conditions reported after files are written."""

    def __init__(self, message: str, *, commands: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.commands = tuple(commands)


class ConfigMergeWarning(InstallerWarning):
    """The settings fragment could not be updated by any strategy."""


class CommitWarning(InstallerWarning):
    """Auto-commit was skipped or the commit command failed."""


class HookWarning(InstallerWarning):
    """A hook installation step failed."""
