"""Stems and the run-time configuration built from diskplan.toml.

A :class:`Config` holds every configured stem, the schema cache shared by
all of them, and the user/group substitution maps. Stems are immutable
once added; cross-stem symlinks are resolved through :meth:`Config.stem_for_path`.
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path

from diskplan.config.loader import ConfigError, ConfigNotFoundError, load_config
from diskplan.core.paths import get_config_path
from diskplan.schema.cache import SchemaCache
from diskplan.schema.models import SchemaNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Stem:
    """A named root directory with the schema applied beneath it.

    Attributes:
        name: Unique stem name.
        root: Absolute, normalized root directory.
        schema_path: Schema file path (or cache identity) for the root.
    """

    name: str
    root: str
    schema_path: str

    def __post_init__(self) -> None:
        """Validate stem data after initialization."""
        if not self.name:
            msg = "Stem name cannot be empty"
            raise ValueError(msg)
        if not self.root.startswith("/") or posixpath.normpath(self.root) != self.root:
            msg = f"Stem root must be an absolute, normalized path, got '{self.root}'"
            raise ValueError(msg)

    def contains(self, path: str) -> bool:
        """True if ``path`` is the root or lies beneath it."""
        if self.root == "/":
            return path.startswith("/")
        return path == self.root or path.startswith(self.root + "/")


class Config:
    """Stems, schema cache and name maps for one invocation.

    Args:
        cache: Schema cache; a new one is created if omitted.
        usermap: Owner name substitutions.
        groupmap: Group name substitutions.
    """

    def __init__(
        self,
        cache: SchemaCache | None = None,
        usermap: dict[str, str] | None = None,
        groupmap: dict[str, str] | None = None,
    ) -> None:
        self.cache = cache if cache is not None else SchemaCache()
        self.usermap: dict[str, str] = dict(usermap or {})
        self.groupmap: dict[str, str] = dict(groupmap or {})
        self._stems: dict[str, Stem] = {}

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Build a configuration from a diskplan.toml file.

        Relative schema paths are resolved against ``schema_directory``,
        which itself defaults to the directory containing the file.

        Raises:
            ConfigError: If the file cannot be loaded or is invalid.
        """
        data = load_config(path)
        base = path.resolve().parent
        schema_directory = base / data.schema_directory if data.schema_directory else base
        config = cls(
            cache=SchemaCache(base_directory=schema_directory),
            usermap=data.usermap,
            groupmap=data.groupmap,
        )
        for name, stem in data.stems.items():
            schema_path = Path(stem.schema_file).expanduser()
            if not schema_path.is_absolute():
                schema_path = schema_directory / schema_path
            config.add_stem(name, stem.root, str(schema_path))
        return config

    @property
    def stems(self) -> list[Stem]:
        """All stems in the order they were added."""
        return list(self._stems.values())

    def add_stem(self, name: str, root: str, schema_path: str) -> Stem:
        """Register a stem whose schema is loaded from a file on first use.

        Raises:
            ConfigError: If the name or root is already taken.
        """
        stem = Stem(name=name, root=posixpath.normpath(root), schema_path=schema_path)
        if name in self._stems:
            raise ConfigError(f"Stem '{name}' is defined twice")
        for other in self._stems.values():
            if other.root == stem.root:
                raise ConfigError(f"Stems '{other.name}' and '{name}' share the root {stem.root}")
        self._stems[name] = stem
        logger.debug("Added stem %s at %s", name, stem.root)
        return stem

    def add_precached_stem(self, name: str, root: str, schema: SchemaNode) -> Stem:
        """Register a stem with an already compiled schema."""
        identity = f"<stem:{name}>"
        self.cache.inject(schema, identity)
        return self.add_stem(name, root, identity)

    def stem(self, name: str) -> Stem:
        """Return a stem by name.

        Raises:
            ConfigError: If no stem has that name.
        """
        try:
            return self._stems[name]
        except KeyError:
            known = ", ".join(sorted(self._stems)) or "none"
            raise ConfigError(f"No stem named '{name}' (configured: {known})") from None

    def stem_for_path(self, path: str) -> Stem | None:
        """Return the stem with the longest root containing ``path``."""
        candidates = [stem for stem in self._stems.values() if stem.contains(path)]
        if not candidates:
            return None
        return max(candidates, key=lambda stem: len(stem.root))

    def schema_for(self, stem: Stem) -> SchemaNode:
        """Return the compiled schema of a stem.

        Raises:
            ParseError: If the schema file cannot be read or parsed.
        """
        return self.cache.load(stem.schema_path)

    def map_user(self, name: str) -> str:
        """Apply the user map to an owner name."""
        return self.usermap.get(name, name)

    def map_group(self, name: str) -> str:
        """Apply the group map to a group name."""
        return self.groupmap.get(name, name)


def require_config(config_path: Path | None = None) -> Config:
    """Load the stem configuration or exit with a helpful error message.

    This is a convenience wrapper around Config.from_file() that handles
    common error cases by printing user-friendly messages and exiting.

    Args:
        config_path: Optional custom configuration path.

    Returns:
        Configuration with every stem registered.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    import typer

    from diskplan.utils.formatting import print_error, print_info

    path = config_path or get_config_path()
    try:
        return Config.from_file(path)
    except ConfigNotFoundError as e:
        print_error(f"Config file not found: {path}")
        print_info("Run 'diskplan init' to create a starter configuration.")
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e
