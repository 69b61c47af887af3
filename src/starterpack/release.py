"""Maintainer helper: bump the release version and publish the tag."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .tools.vcs import GitError, GitRepository

__all__ = ["BumpPart", "ReleasePlan", "next_version", "plan_release", "publish_release"]

LOGGER = logging.getLogger(__name__)


class BumpPart(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


@dataclass(slots=True)
class ReleasePlan:
    previous: str | None
    tag: str


def next_version(current: tuple[int, int, int], part: BumpPart) -> tuple[int, int, int]:
    major, minor, patch = current
    if part is BumpPart.MAJOR:
        return (major + 1, 0, 0)
    if part is BumpPart.MINOR:
        return (major, minor + 1, 0)
    return (major, minor, patch + 1)


def _format(version: tuple[int, int, int]) -> str:
    return "v{}.{}.{}".format(*version)


def plan_release(repo: GitRepository, part: BumpPart) -> ReleasePlan:
    """Compute the next tag from the highest existing ``vX.Y.Z`` tag."""
    tags = repo.release_tags()
    current = tags[0] if tags else (0, 0, 0)
    return ReleasePlan(
        previous=_format(tags[0]) if tags else None,
        tag=_format(next_version(current, part)),
    )


def publish_release(
    repo: GitRepository,
    plan: ReleasePlan,
    *,
    remote: str = "origin",
    push: bool = True,
) -> None:
    """Tag ``HEAD`` with ``plan.tag`` and push it; the tree must be clean."""
    repo.ensure_clean()
    if plan.tag in {_format(version) for version in repo.release_tags()}:
        raise GitError(f"Tag {plan.tag} already exists.")
    repo.create_tag(plan.tag, f"Release {plan.tag}")
    LOGGER.debug("Created tag %s", plan.tag)
    if push:
        repo.push(remote, plan.tag)
