"""Idempotently enable the feature flag inside the settings fragment."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence

from ..errors import ConfigMergeWarning
from ..schema import SettingsFlag
from ..tools.jsonpatch import JsonPatcher, apply_patchers

__all__ = ["MergeStatus", "SettingsMergeResult", "flag_present", "merge_settings_flag"]

LOGGER = logging.getLogger(__name__)


class MergeStatus(str, Enum):
    CREATED = "created"
    ALREADY_SET = "already"
    UPDATED = "updated"


@dataclass(slots=True)
class SettingsMergeResult:
    status: MergeStatus
    strategy: str | None = None


def flag_present(text: str, flag: SettingsFlag) -> bool:
    """Cheap containment probe run before any parsing."""
    pattern = r"%s\s*:\s*%s" % (re.escape(json.dumps(flag.key)), re.escape(json.dumps(flag.value)))
    return re.search(pattern, text) is not None


def _fresh_document(flag: SettingsFlag) -> str:
    return json.dumps({flag.section: {flag.key: flag.value}}, indent=2) + "\n"


def merge_settings_flag(
    workdir: Path,
    flag: SettingsFlag,
    patchers: Sequence[JsonPatcher],
) -> SettingsMergeResult:
    """Ensure ``flag.section.flag.key == flag.value`` in ``flag.path``.

    Creates the file when missing and writes nothing when the flag is already
    set.  Raises :class:`ConfigMergeWarning` when every patcher declines; the
    caller reports it and carries on.
    """
    path = workdir / flag.path
    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_fresh_document(flag), encoding="utf-8")
        except OSError as error:
            raise ConfigMergeWarning(f"could not write {flag.path}: {error}") from error
        return SettingsMergeResult(MergeStatus.CREATED)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise ConfigMergeWarning(f"could not read {flag.path}: {error}") from error

    if flag_present(text, flag):
        return SettingsMergeResult(MergeStatus.ALREADY_SET)

    outcome = apply_patchers(patchers, text, section=flag.section, key=flag.key, value=flag.value)
    if not outcome.ok:
        details = "; ".join(outcome.failures) or "no strategy available"
        raise ConfigMergeWarning(f"could not set {flag.section}.{flag.key} in {flag.path} ({details})")

    try:
        path.write_text(outcome.text or "", encoding="utf-8")
    except OSError as error:
        raise ConfigMergeWarning(f"could not write {flag.path}: {error}") from error
    LOGGER.debug("Set %s.%s via %s", flag.section, flag.key, outcome.strategy)
    return SettingsMergeResult(MergeStatus.UPDATED, strategy=outcome.strategy)
