"""Best-effort strategies for setting one key inside a JSON object section.

Each :class:`JsonPatcher` receives the current document text and returns the
patched text, or raises :class:`PatchError` when it cannot handle the input.
:func:`apply_patchers` walks the chain in order and stops at the first
strategy that succeeds.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol, Sequence

from .runner import CommandRunner

__all__ = [
    "JqPatcher",
    "JsonModulePatcher",
    "JsonPatcher",
    "PatchError",
    "PatchOutcome",
    "TextualPatcher",
    "apply_patchers",
    "default_patchers",
]

LOGGER = logging.getLogger(__name__)


class PatchError(Exception):
    """Raised by a patcher that cannot apply the edit to the given text."""


class JsonPatcher(Protocol):
    name: str

    def patch(self, text: str, section: str, key: str, value: str) -> str:
        """Return ``text`` with ``section.key`` set to ``value``."""


@dataclass(slots=True)
class PatchOutcome:
    """Result of running the patcher chain."""

    text: str | None
    strategy: str | None
    failures: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.text is not None


class JqPatcher:
    """Delegate the merge to ``jq`` when it is installed."""

    name = "jq"

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def patch(self, text: str, section: str, key: str, value: str) -> str:
        if self._runner.which("jq") is None:
            raise PatchError("jq is not installed")
        section_json = json.dumps(section)
        program = f".[{section_json}] = ((.[{section_json}] // {{}}) + {{{json.dumps(key)}: {json.dumps(value)}}})"
        result = self._runner.run(["jq", program], input=text)
        if result.returncode != 0 or not result.stdout.strip():
            raise PatchError(result.stderr.strip() or "jq exited with an error")
        return result.stdout if result.stdout.endswith("\n") else result.stdout + "\n"


class JsonModulePatcher:
    """Parse, modify and re-serialise with the standard :mod:`json` module."""

    name = "json"

    def patch(self, text: str, section: str, key: str, value: str) -> str:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as error:
            raise PatchError(f"invalid JSON: {error}") from error
        if not isinstance(data, dict):
            raise PatchError("top-level JSON value is not an object")
        nested = data.setdefault(section, {})
        if not isinstance(nested, dict):
            raise PatchError(f"{section!r} is not an object")
        nested[key] = value
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class TextualPatcher:
    """Insert the pair with plain text edits; used when parsing is impossible."""

    name = "text"

    def patch(self, text: str, section: str, key: str, value: str) -> str:
        pair = f"{json.dumps(key)}: {json.dumps(value)}"
        opener = re.compile(r"%s\s*:\s*\{" % re.escape(json.dumps(section)))
        match = opener.search(text)
        if match:
            rest = text[match.end():]
            # Only a flat section is patched in place; its body ends at the first "}".
            body_end = rest.find("}")
            if body_end < 0:
                body_end = len(rest)
            body, tail = rest[:body_end], rest[body_end:]
            existing = re.compile(r'%s\s*:\s*"(?:[^"\\]|\\.)*"' % re.escape(json.dumps(key)))
            if existing.search(body):
                body = existing.sub(lambda _: pair, body, count=1)
                return f"{text[:match.end()]}{body}{tail}"
            if re.search(r"%s\s*:" % re.escape(json.dumps(key)), body):
                raise PatchError(f"{key!r} holds a non-string value")
            separator = "" if rest.lstrip().startswith("}") else ","
            return f"{text[:match.end()]} {pair}{separator}{rest}"

        closing = text.rfind("}")
        if closing < 0:
            raise PatchError("no closing brace found")
        head = text[:closing].rstrip()
        if not head.lstrip().startswith("{"):
            raise PatchError("document is not an object")
        separator = "" if head.endswith("{") else ","
        block = f'{separator}\n  {json.dumps(section)}: {{ {pair} }}\n'
        return f"{head}{block}{text[closing:]}"


def default_patchers(runner: CommandRunner) -> list[JsonPatcher]:
    """Return the standard chain: ``jq``, then :mod:`json`, then text edits."""

    return [JqPatcher(runner), JsonModulePatcher(), TextualPatcher()]


def apply_patchers(
    patchers: Sequence[JsonPatcher],
    text: str,
    *,
    section: str,
    key: str,
    value: str,
) -> PatchOutcome:
    """Try each patcher in order and return the first successful result."""

    failures: list[str] = []
    for patcher in patchers:
        try:
            patched = patcher.patch(text, section, key, value)
        except PatchError as error:
            LOGGER.debug("Patcher %s declined: %s", patcher.name, error)
            failures.append(f"{patcher.name}: {error}")
            continue
        return PatchOutcome(text=patched, strategy=patcher.name, failures=tuple(failures))
    return PatchOutcome(text=None, strategy=None, failures=tuple(failures))
