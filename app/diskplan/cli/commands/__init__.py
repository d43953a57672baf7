"""CLI commands for diskplan.

This package contains all subcommand implementations.
"""

from diskplan.cli.commands import build, check, init

__all__ = ["build", "check", "init"]
