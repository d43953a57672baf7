"""Append-only cache of compiled schemas.

Each schema file is parsed at most once per process. Compiled trees are
stored in a list that only ever grows, so a node handed out by the cache
stays valid and unchanged for the lifetime of the cache and can be shared
by every stem, include and definition that refers to it.
"""

import logging
from pathlib import Path

from diskplan.schema.models import SchemaNode
from diskplan.schema.parser import parse_schema_file

logger = logging.getLogger(__name__)


class SchemaCache:
    """Store of compiled schema trees keyed by source path.

    Args:
        base_directory: Directory that relative schema paths are resolved
            against. Defaults to the current working directory.
    """

    def __init__(self, base_directory: Path | None = None) -> None:
        self._base_directory = base_directory
        self._index: dict[str, int] = {}
        self._schemas: list[SchemaNode] = []

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self._key(path) in self._index

    def _key(self, path: str | Path) -> str:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute() and self._base_directory is not None:
            candidate = self._base_directory / candidate
        return str(candidate.resolve())

    def load(self, path: str | Path) -> SchemaNode:
        """Return the compiled schema for a file, parsing it on first use.

        Args:
            path: Schema file path, absolute or relative to the base directory.

        Returns:
            Root node of the compiled schema.

        Raises:
            ParseError: If the file cannot be read or parsed.
        """
        key = self._key(path)
        index = self._index.get(key)
        if index is not None:
            return self._schemas[index]
        schema = parse_schema_file(Path(key))
        return self._store(key, schema)

    def get(self, path: str | Path) -> SchemaNode | None:
        """Return the cached schema for a path without parsing anything."""
        index = self._index.get(self._key(path))
        return self._schemas[index] if index is not None else None

    def inject(self, schema: SchemaNode, path: str | Path) -> SchemaNode:
        """Register an already compiled schema under a path.

        An existing entry for the same path is kept and returned.

        Args:
            schema: Root node of a compiled schema.
            path: Identity to register the schema under.

        Returns:
            The schema stored for that path.
        """
        key = self._key(path)
        index = self._index.get(key)
        if index is not None:
            return self._schemas[index]
        return self._store(key, schema)

    def _store(self, key: str, schema: SchemaNode) -> SchemaNode:
        self._index[key] = len(self._schemas)
        self._schemas.append(schema)
        logger.debug("Cached schema %s (%d total)", key, len(self._schemas))
        return schema
