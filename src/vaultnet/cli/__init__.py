"""Command-line interface for vaultnet."""

from vaultnet.cli.main import main

__all__ = ["main"]
