"""Init command implementation.

Creates a starter diskplan.toml and schema file.
"""

from pathlib import Path
from typing import Annotated

import typer

from diskplan.config.loader import ConfigError, save_config
from diskplan.config.models import ConfigFile, StemConfig
from diskplan.core.paths import get_local_config_path
from diskplan.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Create a starter configuration and schema.",
    invoke_without_command=True,
)

DEFAULT_STEM = "main"
DEFAULT_ROOT = "/srv/data"
DEFAULT_SCHEMA = "main.diskschema"

STARTER_SCHEMA = """\
# Schema applied beneath the stem root.
# Names ending in / are directories; a $name entry matches existing
# entries (and --vars assignments) whose name passes its :match.

:mode 755

shared/
    :mode 775

users/
    $user/
        :match [a-z][a-z0-9_-]*
        :mode 750

        README
            :content Home of $user
        projects/
"""


def _show_summary(config: ConfigFile, config_file: Path, schema_file: Path) -> None:
    """Display what was written."""
    console.print()
    console.print("[bold]Configuration Summary[/bold]")
    console.print(f"  Config: [muted]{config_file}[/muted]")
    console.print(f"  Schema: [muted]{schema_file}[/muted]")
    for name, stem in config.stems.items():
        console.print(f"  Stem [info]{name}[/info]: {stem.root}")
    console.print()


@app.callback(invoke_without_command=True)
def init_config(
    ctx: typer.Context,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path for diskplan.toml.",
        ),
    ] = None,
    root: Annotated[
        str,
        typer.Option(
            "--root",
            "-r",
            help="Absolute root directory of the starter stem.",
        ),
    ] = DEFAULT_ROOT,
    schema: Annotated[
        str,
        typer.Option(
            "--schema",
            help="Schema file name, relative to the config file.",
        ),
    ] = DEFAULT_SCHEMA,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing files without prompting.",
        ),
    ] = False,
) -> None:
    """Create a starter diskplan.toml with one stem and its schema.

    The schema file is written next to the configuration and is left
    untouched if it already exists, unless --force is given.

    Examples:
        diskplan init                           # ./diskplan.toml
        diskplan init --root /home              # Stem rooted at /home
        diskplan init -o /etc/diskplan.toml     # Custom location
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    config_file = output or get_local_config_path()

    if config_file.exists():
        if not force:
            print_error(f"Config file already exists: {config_file}")
            print_info("Use --force to overwrite or specify a different path with --output.")
            raise typer.Exit(code=1)
        print_warning(f"Overwriting existing config file: {config_file}")

    try:
        config = ConfigFile(stems={DEFAULT_STEM: StemConfig(root=root, schema_file=schema)})
    except ValueError as e:
        print_error(f"Invalid stem: {e}")
        raise typer.Exit(code=1) from e

    schema_file = Path(schema)
    if not schema_file.is_absolute():
        schema_file = config_file.parent / schema_file

    try:
        saved_path = save_config(config, config_file)
    except ConfigError as e:
        print_error(f"Failed to save config: {e}")
        raise typer.Exit(code=1) from e

    if schema_file.exists() and not force:
        print_info(f"Keeping existing schema: {schema_file}")
    else:
        try:
            schema_file.parent.mkdir(parents=True, exist_ok=True)
            schema_file.write_text(STARTER_SCHEMA, encoding="utf-8")
        except OSError as e:
            print_error(f"Failed to write schema: {e}")
            raise typer.Exit(code=1) from e

    _show_summary(config, saved_path, schema_file)
    print_success(f"Config created: {saved_path}")
