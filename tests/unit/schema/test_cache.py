"""Unit tests for the schema cache."""

from pathlib import Path

import pytest
from diskplan.schema.cache import SchemaCache
from diskplan.schema.parser import ParseError, parse_schema


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    """Directory holding two schema files."""
    (tmp_path / "main.diskschema").write_text("a/\n    b/\n")
    (tmp_path / "other.diskschema").write_text("c/\n")
    return tmp_path


class TestSchemaCache:
    """Tests for SchemaCache."""

    def test_load_parses_once(self, schema_dir: Path) -> None:
        """Loading the same path twice returns the same compiled tree."""
        cache = SchemaCache()

        first = cache.load(schema_dir / "main.diskschema")
        second = cache.load(str(schema_dir / "main.diskschema"))

        assert first is second
        assert len(cache) == 1

    def test_relative_paths_use_base_directory(self, schema_dir: Path) -> None:
        """Relative paths resolve against the base directory."""
        cache = SchemaCache(base_directory=schema_dir)

        relative = cache.load("other.diskschema")
        absolute = cache.load(schema_dir / "other.diskschema")

        assert relative is absolute
        assert "other.diskschema" in cache
        assert schema_dir / "other.diskschema" in cache

    def test_equivalent_paths_share_entry(self, schema_dir: Path) -> None:
        """Paths that resolve to the same file share one entry."""
        cache = SchemaCache()
        (schema_dir / "sub").mkdir()

        first = cache.load(schema_dir / "main.diskschema")
        second = cache.load(schema_dir / "sub" / ".." / "main.diskschema")

        assert first is second

    def test_inject(self, tmp_path: Path) -> None:
        """Injected schemas are returned without reading a file."""
        cache = SchemaCache(base_directory=tmp_path)
        schema = parse_schema("x/\n")

        stored = cache.inject(schema, "<stem:main>")

        assert stored is schema
        assert cache.load("<stem:main>") is schema
        assert cache.get("<stem:main>") is schema

    def test_inject_keeps_existing(self, tmp_path: Path) -> None:
        """A second injection under the same path keeps the first schema."""
        cache = SchemaCache(base_directory=tmp_path)
        first = parse_schema("x/\n")

        cache.inject(first, "s")
        stored = cache.inject(parse_schema("y/\n"), "s")

        assert stored is first
        assert len(cache) == 1

    def test_get_does_not_parse(self, schema_dir: Path) -> None:
        """get returns None for paths that were never loaded."""
        cache = SchemaCache(base_directory=schema_dir)

        assert cache.get("main.diskschema") is None
        assert len(cache) == 0

    def test_load_missing_raises(self, tmp_path: Path) -> None:
        """Missing files raise ParseError."""
        cache = SchemaCache(base_directory=tmp_path)

        with pytest.raises(ParseError):
            cache.load("missing.diskschema")

    def test_contains_rejects_other_types(self) -> None:
        """Membership checks with non-paths are False."""
        assert 42 not in SchemaCache()
