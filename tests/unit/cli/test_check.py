"""Unit tests for check command."""

from pathlib import Path

from diskplan.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


def _write_config(directory: Path, schema: str) -> Path:
    (directory / "main.diskschema").write_text(schema)
    config = directory / "diskplan.toml"
    config.write_text('[stems.main]\nroot = "/srv/data"\nschema = "main.diskschema"\n')
    return config


class TestCheckCommand:
    """Tests for diskplan check command."""

    def test_valid_schema(self, tmp_path: Path) -> None:
        """A valid configuration lists its stems and reports success."""
        config = _write_config(tmp_path, "$user/\n    :owner $user\n")

        result = runner.invoke(app, ["check", "-c", str(config)])

        assert result.exit_code == 0
        assert "Stems" in result.stdout
        assert "1 schema(s) OK" in result.stdout

    def test_undefined_variable(self, tmp_path: Path) -> None:
        """Unbound variables fail the check."""
        config = _write_config(tmp_path, "data/\n    :group $team\n")

        result = runner.invoke(app, ["check", "-c", str(config)])

        assert result.exit_code == 1
        assert "Undefined variable" in result.output

    def test_vars_satisfy_references(self, tmp_path: Path) -> None:
        """Variables given with --vars count as defined."""
        config = _write_config(tmp_path, "data/\n    :group $team\n")

        result = runner.invoke(app, ["check", "-c", str(config), "--vars", "team:ops"])

        assert result.exit_code == 0

    def test_parse_error(self, tmp_path: Path) -> None:
        """Syntax errors fail the check."""
        config = _write_config(tmp_path, "data\n")

        result = runner.invoke(app, ["check", "-c", str(config)])

        assert result.exit_code == 1
        assert "error:" in result.output

    def test_no_stems(self, tmp_path: Path) -> None:
        """A configuration without stems is an error."""
        config = tmp_path / "diskplan.toml"
        config.write_text("")

        result = runner.invoke(app, ["check", "-c", str(config)])

        assert result.exit_code == 1
        assert "No stems" in result.output
