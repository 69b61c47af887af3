"""Install/upgrade reconciliation steps and the engine that sequences them."""

from .engine import InstallReport, Installer, RunStatus

__all__ = ["InstallReport", "Installer", "RunStatus"]
