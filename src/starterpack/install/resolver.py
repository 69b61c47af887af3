"""Turn a requested version token into a concrete release tag."""

from __future__ import annotations

import logging
import re

from ..errors import ValidationError
from ..tools.http import ReleaseClient

__all__ = ["LATEST", "VERSION_PATTERN", "resolve_version", "validate_version"]

LOGGER = logging.getLogger(__name__)

LATEST = "latest"
VERSION_PATTERN = re.compile(r"^v\d+\.\d+\.\d+$")


def validate_version(token: str) -> str:
    """Return ``token`` unchanged if it is ``vMAJOR.MINOR.PATCH``."""
    if not VERSION_PATTERN.match(token):
        raise ValidationError(
            f"Invalid version format: {token} (expected v#.#.# e.g. v1.0.0)",
        )
    return token


def resolve_version(token: str, client: ReleaseClient) -> str:
    """Resolve ``token``; only ``latest`` touches the network.

    Literal versions are checked syntactically and passed through without
    confirming the release exists; a missing tag surfaces at download time.
    """
    if token != LATEST:
        return validate_version(token)

    LOGGER.debug("Resolving latest release of %s", client.repository.slug)
    return client.latest_tag()
