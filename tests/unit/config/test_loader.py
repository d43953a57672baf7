"""Unit tests for configuration file I/O."""

import tomllib
from pathlib import Path

import pytest
from diskplan.config.loader import (
    ConfigNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    load_config,
    save_config,
)
from diskplan.config.models import ConfigFile, StemConfig


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid(self, tmp_path: Path) -> None:
        """A valid file is loaded."""
        path = tmp_path / "diskplan.toml"
        path.write_text(
            '[stems.main]\nroot = "/srv/data"\nschema = "main.diskschema"\n'
            '[usermap]\nadmin = "alice"\n'
        )

        config = load_config(path)

        assert config.stems["main"].root == "/srv/data"
        assert config.usermap == {"admin": "alice"}

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files raise ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError, match="not found"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Bad syntax raises ConfigParseError."""
        path = tmp_path / "diskplan.toml"
        path.write_text("[stems\n")

        with pytest.raises(ConfigParseError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        """Bad content raises ConfigValidationError."""
        path = tmp_path / "diskplan.toml"
        path.write_text('[stems.main]\nroot = "relative"\nschema = "s"\n')

        with pytest.raises(ConfigValidationError, match="Invalid config"):
            load_config(path)


class TestSaveConfig:
    """Tests for save_config function."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """Saved files load back to an equal configuration."""
        config = ConfigFile(
            stems={"main": StemConfig(root="/srv", schema_file="main.diskschema")},
            groupmap={"staff": "users"},
        )
        path = tmp_path / "nested" / "diskplan.toml"

        saved = save_config(config, path)

        assert saved == path
        assert load_config(path) == config

    def test_written_format(self, tmp_path: Path) -> None:
        """The file uses the 'schema' key and omits empty maps."""
        config = ConfigFile(stems={"main": StemConfig(root="/srv", schema_file="m")})
        path = tmp_path / "diskplan.toml"

        save_config(config, path)

        with open(path, "rb") as f:
            data = tomllib.load(f)
        assert data == {"stems": {"main": {"root": "/srv", "schema": "m"}}}

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        """Atomic write leaves only the target file."""
        save_config(ConfigFile(), tmp_path / "diskplan.toml")

        assert [p.name for p in tmp_path.iterdir()] == ["diskplan.toml"]
