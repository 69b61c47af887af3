"""Read-only client for the release-hosting API and archive downloads."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from ..errors import DownloadError, NetworkError, NotFoundError, RateLimitError
from ..schema import RepositorySpec

__all__ = ["HttpResponse", "ReleaseClient", "Transport", "urllib_transport"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class HttpResponse:
    """Status code and raw body of a completed HTTP exchange."""

    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


# Returns a response for any HTTP status; raises OSError on transport failure.
Transport = Callable[[str, Mapping[str, str]], HttpResponse]


def urllib_transport(url: str, headers: Mapping[str, str]) -> HttpResponse:
    """Default transport: a blocking GET through :mod:`urllib`."""
    import http.client
    import urllib.error
    import urllib.request

    request = urllib.request.Request(url, headers=dict(headers), method="GET")
    try:
        with urllib.request.urlopen(request) as response:
            return HttpResponse(status=getattr(response, "status", 200), body=response.read())
    except urllib.error.HTTPError as error:
        body = error.read() if error.fp is not None else b""
        return HttpResponse(status=error.code, body=body)
    except http.client.HTTPException as error:
        raise OSError(f"{type(error).__name__}: {error}") from error


class ReleaseClient:
    """Thin adapter around the ``releases/latest`` endpoint and tag archives."""

    def __init__(
        self,
        repository: RepositorySpec,
        *,
        token: Optional[str] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.repository = repository
        self._token = token
        self._transport = transport or urllib_transport

    def _api_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "starterpack-installer",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def latest_tag(self) -> str:
        """Return the ``tag_name`` of the most recent published release."""
        url = self.repository.latest_release_url
        LOGGER.debug("GET %s", url)
        try:
            response = self._transport(url, self._api_headers())
        except OSError as error:
            raise NetworkError(f"Failed to resolve latest release: {error}") from error

        if response.status == 403:
            raise RateLimitError(
                "GitHub API rate limit hit.",
                remediation="Set $GITHUB_TOKEN or specify a version directly with --version.",
            )
        if response.status == 404:
            raise NotFoundError(
                f"No releases found. {self.repository.slug} may not have any tagged releases yet.",
            )
        if not response.ok:
            raise NetworkError(f"Failed to resolve latest release: HTTP {response.status}")

        try:
            payload = json.loads(response.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            raise NetworkError("Failed to parse release tag from GitHub API response.") from error

        tag = payload.get("tag_name") if isinstance(payload, dict) else None
        if not isinstance(tag, str) or not tag.strip():
            raise NetworkError("Failed to parse release tag from GitHub API response.")
        return tag.strip()

    def download_archive(self, version: str, destination: Path) -> Path:
        """Download the source archive for ``version`` into ``destination``."""
        url = self.repository.archive_url(version)
        hint = f"Check that version {version} exists at {self.repository.releases_page}"
        LOGGER.debug("GET %s -> %s", url, destination)
        headers = {"User-Agent": "starterpack-installer"}
        try:
            response = self._transport(url, headers)
        except OSError as error:
            raise DownloadError(f"Download failed: {error}", remediation=hint) from error
        if not response.ok:
            raise DownloadError(f"Download failed: HTTP {response.status}", remediation=hint)

        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(response.body)
        return destination
