"""Utility modules for diskplan.

This module exports commonly used utility functions.
"""

from diskplan.utils.formatting import (
    console,
    err_console,
    format_mode,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from diskplan.utils.logging import configure_logging

__all__ = [
    "configure_logging",
    "console",
    "err_console",
    "format_mode",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
