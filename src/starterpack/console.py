"""Line-oriented diagnostics with a consistent ``[ok]/[skip]/[warn]`` marker."""

from __future__ import annotations

import logging
from typing import List

import typer

__all__ = ["Console"]

LOGGER = logging.getLogger(__name__)


class Console:
    """Writes installer progress through :func:`typer.echo`.

    Every line is also kept in :attr:`lines` (without colour) so callers can
    inspect what a run reported.
    """

    def __init__(self, *, color: bool | None = None) -> None:
        self._color = color
        self.lines: List[str] = []

    def _emit(self, text: str, *, fg: str | None = None, err: bool = False, indent: bool = False) -> None:
        line = f"  {text}" if indent else text
        self.lines.append(line)
        styled = typer.style(line, fg=fg) if fg else line
        typer.echo(styled, err=err, color=self._color)

    def ok(self, message: str) -> None:
        self._emit(f"[ok] {message}", fg=typer.colors.GREEN, indent=True)

    def skip(self, message: str) -> None:
        self._emit(f"[skip] {message}", fg=typer.colors.YELLOW, indent=True)

    def warn(self, message: str) -> None:
        LOGGER.debug("warn: %s", message)
        self._emit(f"[warn] {message}", fg=typer.colors.YELLOW, indent=True)

    def detail(self, message: str, *, fg: str | None = None) -> None:
        """Indented follow-up line (remediation commands, preview entries)."""
        self._emit(message, fg=fg, indent=True)

    def info(self, message: str) -> None:
        self._emit(message, fg=typer.colors.CYAN)

    def notice(self, message: str) -> None:
        self._emit(message, fg=typer.colors.YELLOW)

    def success(self, message: str) -> None:
        self._emit(message, fg=typer.colors.GREEN)

    def error(self, message: str) -> None:
        self._emit(message, fg=typer.colors.RED, err=True)

    def blank(self) -> None:
        self._emit("")
