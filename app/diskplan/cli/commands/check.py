"""Check command implementation.

Parses every stem's schema and checks variable and definition references
without touching the filesystem.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from diskplan.cli.types import parse_name_map
from diskplan.config.stems import require_config
from diskplan.schema.parser import ParseError
from diskplan.traversal.check import check_schemas
from diskplan.traversal.errors import TraversalError
from diskplan.utils.formatting import console, err_console, print_error, print_success

app = typer.Typer(
    help="Validate the configured schemas.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def check_config(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to diskplan.toml.",
        ),
    ] = None,
    variables: Annotated[
        str | None,
        typer.Option(
            "--vars",
            help="Variable assignments to check against, as name:value pairs.",
        ),
    ] = None,
) -> None:
    """Parse all stem schemas and check their references.

    Reports syntax errors with the offending line, and variables or
    definitions that no enclosing scope provides.

    Examples:
        diskplan check                   # Check the default configuration
        diskplan check -c other.toml     # Check another configuration
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    assignments = parse_name_map(variables, "--vars")
    config = require_config(config_path)

    table = Table(
        title="Stems",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Stem", no_wrap=True)
    table.add_column("Root", no_wrap=True)
    table.add_column("Schema")

    try:
        for stem in config.stems:
            config.schema_for(stem)
            table.add_row(
                f"[info]{stem.name}[/info]", stem.root, f"[muted]{stem.schema_path}[/muted]"
            )
        check_schemas(config, assignments)
    except ParseError as e:
        err_console.print(e.render(), markup=False, highlight=False)
        raise typer.Exit(code=1) from e
    except TraversalError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not config.stems:
        print_error("No stems are configured.")
        raise typer.Exit(code=1)

    console.print(table)
    print_success(f"{len(config.stems)} schema(s) OK")
