"""Build command implementation.

Applies the configured schemas to a target path, simulating by default.
"""

from pathlib import Path
from typing import Annotated

import typer

from diskplan.cli.display import create_report_table, create_report_tree, print_report_summary
from diskplan.cli.types import OutputFormat, parse_name_map
from diskplan.config.loader import ConfigError
from diskplan.config.stems import Config, require_config
from diskplan.schema.parser import ParseError
from diskplan.traversal.engine import apply
from diskplan.traversal.errors import TraversalError
from diskplan.traversal.results import Mode, TraversalReport
from diskplan.utils.formatting import console, err_console, print_error, print_info, print_warning

app = typer.Typer(
    help="Create the directories, files and links a schema describes.",
    invoke_without_command=True,
)


def _run(
    config: Config,
    target: str | None,
    stem: str | None,
    variables: dict[str, str],
    mode: Mode,
) -> TraversalReport:
    """Run a traversal, turning fatal errors into a non-zero exit."""
    try:
        return apply(config, target=target, mode=mode, variables=variables, stem=stem)
    except ParseError as e:
        err_console.print(e.render(), markup=False, highlight=False)
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except TraversalError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def build_tree(
    ctx: typer.Context,
    target: Annotated[
        str | None,
        typer.Argument(
            help="Path to build; relative paths are taken from the stem root.",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to diskplan.toml.",
        ),
    ] = None,
    stem: Annotated[
        str | None,
        typer.Option(
            "--stem",
            "-s",
            help="Name of the stem to build from.",
        ),
    ] = None,
    variables: Annotated[
        str | None,
        typer.Option(
            "--vars",
            help="Variable assignments as name:value pairs, e.g. 'user:alice,team:ops'.",
        ),
    ] = None,
    usermap: Annotated[
        str | None,
        typer.Option(
            "--usermap",
            help="Owner substitutions as from:to pairs.",
        ),
    ] = None,
    groupmap: Annotated[
        str | None,
        typer.Option(
            "--groupmap",
            help="Group substitutions as from:to pairs.",
        ),
    ] = None,
    apply_changes: Annotated[
        bool,
        typer.Option(
            "--apply",
            help="Make the changes on disk instead of simulating them.",
        ),
    ] = False,
    tree: Annotated[
        bool,
        typer.Option(
            "--tree",
            "-t",
            help="Show the result as a directory tree.",
        ),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Build a directory tree from the configured schemas.

    Without --apply nothing on disk is changed: every operation is applied
    to an in-memory overlay and reported. The exit code is 1 if any path
    ended in a conflict or a failed operation.

    Examples:
        diskplan build                          # Simulate the whole stem
        diskplan build /srv/data/users/alice    # Simulate down to one path
        diskplan build --vars user:alice        # Fill the $user binder
        diskplan build --apply                  # Make the changes
        diskplan build --format json            # Machine-readable report
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    assignments = parse_name_map(variables, "--vars")
    user_substitutions = parse_name_map(usermap, "--usermap")
    group_substitutions = parse_name_map(groupmap, "--groupmap")

    config = require_config(config_path)
    config.usermap.update(user_substitutions)
    config.groupmap.update(group_substitutions)

    mode = Mode.APPLY if apply_changes else Mode.SIMULATE
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))

    if mode == Mode.SIMULATE and output_format == OutputFormat.TABLE and not quiet:
        print_info("[SIMULATE] No changes will be made. Use --apply to build.")

    report = _run(config, target, stem, assignments, mode)

    if output_format == OutputFormat.JSON:
        console.print_json(data=report.to_dict())
    else:
        if not quiet:
            console.print(create_report_tree(report) if tree else create_report_table(report))
        print_report_summary(report)
        for node in report.failures():
            print_warning(f"{node.path}: {node.error}")

    if report.has_failures:
        raise typer.Exit(code=1)
