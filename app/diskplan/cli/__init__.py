"""CLI package for diskplan.

This package contains the Typer application and all subcommands.
"""

from diskplan.cli.main import app

__all__ = ["app"]
