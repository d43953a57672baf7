"""Configuration: diskplan.toml models, file I/O and the stem registry."""

from diskplan.config.loader import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    load_config,
    save_config,
)
from diskplan.config.models import ConfigFile, StemConfig
from diskplan.config.stems import Config, Stem, require_config

__all__ = [
    "Config",
    "ConfigError",
    "ConfigFile",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "Stem",
    "StemConfig",
    "load_config",
    "require_config",
    "save_config",
]
