"""Configuration file I/O operations.

This module provides functions for loading and saving diskplan.toml
files in TOML format with validation using Pydantic models.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import tomli_w
from pydantic import ValidationError

from diskplan.config.models import ConfigFile
from diskplan.core.errors import DiskplanError
from diskplan.core.paths import get_config_path


class ConfigError(DiskplanError):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration content is invalid."""


def load_config(path: Path | None = None) -> ConfigFile:
    """Load and validate a configuration file.

    Args:
        path: Path to the configuration file. If None, uses the default path.

    Returns:
        Validated ConfigFile object.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the model.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def save_config(config: ConfigFile, path: Path | None = None) -> Path:
    """Save a configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        config: The ConfigFile object to save.
        path: Destination path. If None, uses the default path.

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: ConfigFile) -> dict[str, Any]:
    """Convert a ConfigFile to a dictionary suitable for TOML serialization.

    Empty optional sections are omitted.
    """
    data: dict[str, Any] = {}
    if config.schema_directory is not None:
        data["schema_directory"] = config.schema_directory
    data["stems"] = {
        name: stem.model_dump(by_alias=True) for name, stem in config.stems.items()
    }
    if config.usermap:
        data["usermap"] = dict(config.usermap)
    if config.groupmap:
        data["groupmap"] = dict(config.groupmap)
    return data
