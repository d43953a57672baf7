"""XDG-compliant path management for diskplan.

The configuration file is looked up in the working directory first and
then in the XDG configuration directory:

- Local: ./diskplan.toml
- User: ~/.config/diskplan/diskplan.toml
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "diskplan"

CONFIG_FILENAME = "diskplan.toml"

# Overrides the log level configured from the command line
LOG_LEVEL_ENV = "DISKPLAN_LOG"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/diskplan/ (or XDG_CONFIG_HOME/diskplan/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_user_config_path() -> Path:
    """Get the per-user configuration file path.

    Returns:
        Path to ~/.config/diskplan/diskplan.toml.
    """
    return get_config_dir() / CONFIG_FILENAME


def get_local_config_path() -> Path:
    """Get the configuration file path in the working directory."""
    return Path.cwd() / CONFIG_FILENAME


def get_config_path() -> Path:
    """Get the configuration file to use when none is given.

    Returns:
        ./diskplan.toml if it exists, otherwise the per-user path.
    """
    local = get_local_config_path()
    if local.exists():
        return local
    return get_user_config_path()


def get_theme_path() -> Path:
    """Get the user theme configuration path.

    Returns:
        Path to ~/.config/diskplan/theme.toml.
    """
    return get_config_dir() / "theme.toml"
