"""CLI commands for installing, inspecting and releasing the starterpack bundle."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config import InstallerConfig, load_profile
from .console import Console
from .errors import InstallerError
from .install import Installer
from .install.prereq import is_initialised
from .install.state import read_installed_version
from .release import BumpPart, plan_release, publish_release
from .tools.vcs import GitError, GitRepository

APP_HELP = "Install or upgrade the starterpack workflow bundle in the current project."

app = typer.Typer(help=APP_HELP, no_args_is_help=True)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Log debug details (commands run, URLs fetched) to stderr.",
    ),
) -> None:
    """Starterpack installer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _explicit(ctx: typer.Context, name: str, value: Any) -> Any:
    """Return ``value`` only when it was given on the command line."""
    source = ctx.get_parameter_source(name)
    if source is not None and source.name == "COMMANDLINE":
        return value
    return None


def _fail(console: Console, error: Exception, *, remediation: Optional[str] = None) -> None:
    console.error(f"ERROR: {error}")
    if remediation:
        console.error(f"  {remediation}")
    raise typer.Exit(code=1)


@app.command()
def install(
    ctx: typer.Context,
    version: Optional[str] = typer.Option(
        None,
        "--version",
        "-v",
        help="Release to install (vMAJOR.MINOR.PATCH or 'latest'). Env: STARTERPACK_VERSION.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be installed without writing files. Env: STARTERPACK_DRYRUN.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Reinstall even when the recorded version matches. Env: STARTERPACK_FORCE.",
    ),
    init_beads: bool = typer.Option(
        False,
        "--init-beads",
        help="Initialise the Beads ticket database if it is missing. Env: STARTERPACK_INIT_BEADS.",
    ),
    no_commit: bool = typer.Option(
        False,
        "--no-commit",
        help="Do not stage or commit the installed files. Env: STARTERPACK_NO_COMMIT.",
    ),
    profile: Optional[Path] = typer.Option(
        None,
        "--profile",
        help="Bundle profile YAML (defaults to the packaged profile).",
    ),
    workdir: Path = typer.Option(
        Path("."),
        "--workdir",
        "-C",
        help="Project directory to install into.",
    ),
) -> None:
    """Install or upgrade the bundle from a tagged release."""
    console = Console()
    overrides: Dict[str, Any] = {
        "version": _explicit(ctx, "version", version),
        "dry_run": _explicit(ctx, "dry_run", dry_run),
        "force": _explicit(ctx, "force", force),
        "init_prerequisite": _explicit(ctx, "init_beads", init_beads),
        "no_commit": _explicit(ctx, "no_commit", no_commit),
    }
    try:
        config = InstallerConfig.resolve(
            overrides,
            profile=load_profile(profile),
            workdir=workdir,
        )
        Installer(config, console=console).run()
    except InstallerError as error:
        _fail(console, error, remediation=error.remediation)
    except OSError as error:
        _fail(console, error, remediation="Check permissions and free disk space, then re-run.")


@app.command()
def status(
    profile: Optional[Path] = typer.Option(
        None,
        "--profile",
        help="Bundle profile YAML (defaults to the packaged profile).",
    ),
    workdir: Path = typer.Option(
        Path("."),
        "--workdir",
        "-C",
        help="Project directory to inspect.",
    ),
) -> None:
    """Report the installed version and missing bundle files (no network)."""
    console = Console()
    try:
        bundle = load_profile(profile)
    except InstallerError as error:
        _fail(console, error, remediation=error.remediation)
        return

    root = workdir.resolve()
    installed = read_installed_version(root / bundle.version_file)
    typer.echo(f"Installed version: {installed or 'not installed'}")

    spec = bundle.prerequisite
    if spec is not None:
        state = "initialized" if is_initialised(spec, root) else "not initialized"
        typer.echo(f"{spec.name}: {state}")

    missing = [entry for entry in bundle.manifest if not (root / entry).exists()]
    if missing:
        typer.echo(f"Missing bundle files ({len(missing)}):")
        for entry in missing:
            typer.echo(f"- {entry}")
    else:
        typer.echo("All bundle files present.")


@app.command()
def release(
    part: BumpPart = typer.Argument(..., help="Version component to bump."),
    remote: str = typer.Option("origin", "--remote", help="Remote that receives the tag."),
    push: bool = typer.Option(True, "--push/--no-push", help="Push the new tag to the remote."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only print the next tag."),
    repo_path: Path = typer.Option(
        Path("."),
        "--repo",
        help="Repository of the bundle being released.",
    ),
) -> None:
    """Tag the next release of the bundle (maintainers only)."""
    console = Console()
    try:
        repo = GitRepository(repo_path)
        plan = plan_release(repo, part)
        typer.echo(f"Previous release: {plan.previous or 'none'}")
        typer.echo(f"Next release: {plan.tag}")
        if dry_run:
            return
        publish_release(repo, plan, remote=remote, push=push)
    except GitError as error:
        _fail(console, error)
        return
    console.success(f"Tagged {plan.tag}" + (f" and pushed to {remote}." if push else "."))


if __name__ == "__main__":
    app()
