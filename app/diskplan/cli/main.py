"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from diskplan import __version__
from diskplan.cli.commands import build, check, init
from diskplan.utils.logging import configure_logging

# Create main Typer app
app = typer.Typer(
    name="diskplan",
    help="Build directory trees from declarative schemas.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"diskplan version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Log each operation (-v) or every decision (-vv).",
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """diskplan - Build directory trees from declarative schemas.

    Describe the directories, files, symlinks, owners and permissions
    that should exist under each configured root, then let diskplan
    create whatever is missing.
    """
    configure_logging(verbose, quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(build.app, name="build")
app.add_typer(check.app, name="check")
app.add_typer(init.app, name="init")


if __name__ == "__main__":
    app()
