"""Adapters for external binaries, the release API and archives."""

from .archive import extract_archive, find_single_root
from .http import HttpResponse, ReleaseClient, Transport, urllib_transport
from .jsonpatch import JqPatcher, JsonModulePatcher, JsonPatcher, PatchError, TextualPatcher, apply_patchers, default_patchers
from .runner import CommandRunner, SubprocessRunner
from .vcs import GitError, GitRepository

__all__ = [
    "CommandRunner",
    "GitError",
    "GitRepository",
    "HttpResponse",
    "JqPatcher",
    "JsonModulePatcher",
    "JsonPatcher",
    "PatchError",
    "ReleaseClient",
    "SubprocessRunner",
    "TextualPatcher",
    "Transport",
    "apply_patchers",
    "default_patchers",
    "extract_archive",
    "find_single_root",
    "urllib_transport",
]
