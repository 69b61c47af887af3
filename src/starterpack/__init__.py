"""Installer and updater for the starterpack workflow bundle."""

__version__ = "0.1.0"

__all__ = ["__version__"]
