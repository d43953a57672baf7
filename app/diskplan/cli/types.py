"""Shared types and option parsers for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

from enum import Enum

import typer


class OutputFormat(str, Enum):
    """Output formats for reports."""

    TABLE = "table"
    JSON = "json"


def parse_name_map(value: str | None, option: str = "--vars") -> dict[str, str]:
    """Parse ``key:value,key:value`` into a dictionary.

    Args:
        value: Raw option value, or None if the option was not given.
        option: Option name used in error messages.

    Returns:
        Mapping of keys to values, in the order given.

    Raises:
        typer.BadParameter: If an item has no ``:`` or an empty key.
    """
    result: dict[str, str] = {}
    if not value:
        return result
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, mapped = item.partition(":")
        key = key.strip()
        if not sep or not key:
            msg = f"Expected name:value pairs separated by commas, got '{item}'"
            raise typer.BadParameter(msg, param_hint=option)
        result[key] = mapped.strip()
    return result
