"""Unit tests for static schema validation."""

from collections.abc import Callable
from pathlib import Path

import pytest
from diskplan.config.stems import Config
from diskplan.schema.cache import SchemaCache
from diskplan.schema.expression import parse_expression
from diskplan.traversal.check import check_schemas, is_relative_target
from diskplan.traversal.errors import (
    InvalidLink,
    InvalidPattern,
    RecursiveSchema,
    UndefinedDefinition,
    UndefinedVariable,
)

ConfigFactory = Callable[..., Config]


class TestCheckSchemas:
    """Tests for check_schemas function."""

    def test_valid_schema(self, make_config: ConfigFactory, example_schema: str) -> None:
        """A consistent schema passes."""
        check_schemas(make_config(example_schema))

    def test_binder_defines_variable(self, make_config: ConfigFactory) -> None:
        """Variables bound by enclosing binders are defined."""
        config = make_config(
            """
            $user/
                :owner $user
                notes
                    :content $user $NAME
            """
        )

        check_schemas(config)

    def test_undefined_in_directive(self, make_config: ConfigFactory) -> None:
        """Unbound references are reported with their line."""
        config = make_config(
            """
            data/
                :group $team
            """
        )

        with pytest.raises(UndefinedVariable, match=r"'\$team' in 'data/' \(line 1\)"):
            check_schemas(config)

    def test_undefined_in_pattern(self, make_config: ConfigFactory) -> None:
        """Binder patterns are checked in the parent scope."""
        config = make_config(
            """
            $user/
                :match ${prefix}.*
            """
        )

        with pytest.raises(UndefinedVariable, match="prefix"):
            check_schemas(config)

    def test_external_variables_count(self, make_config: ConfigFactory) -> None:
        """Externally assigned variables are visible everywhere."""
        config = make_config(
            """
            data/
                :group $team
            """
        )

        check_schemas(config, {"team": "ops"})

    def test_undefined_definition(self, make_config: ConfigFactory) -> None:
        """Unknown definitions are reported."""
        config = make_config(
            """
            a/
                :use missing
            """
        )

        with pytest.raises(UndefinedDefinition):
            check_schemas(config)

    def test_recursive_definition(self, make_config: ConfigFactory) -> None:
        """Definitions that use themselves do not loop forever."""
        config = make_config(
            """
            :def tree/
                $child/
                    :use tree
            root/
                :use tree
            """
        )

        check_schemas(config)

    def test_recursion_through_fixed_entries(self, make_config: ConfigFactory) -> None:
        """A definition that contains itself without a binder never ends."""
        config = make_config(
            """
            :def d/
                sub/
                    :use d
            top/
                :use d
            """
        )

        with pytest.raises(RecursiveSchema, match="'sub/'"):
            check_schemas(config)

    def test_recursive_include(self, tmp_path: Path) -> None:
        """A schema file including itself below a fixed entry is rejected."""
        (tmp_path / "loop.diskschema").write_text("again/\n    :include loop.diskschema\n")
        config = Config(cache=SchemaCache(base_directory=tmp_path))
        config.add_stem("main", "/data", str(tmp_path / "loop.diskschema"))

        with pytest.raises(RecursiveSchema):
            check_schemas(config)

    def test_invalid_interpolated_pattern(self, make_config: ConfigFactory) -> None:
        """Patterns that only become invalid once evaluated are reported."""
        config = make_config(
            """
            :let open = [
            $name/
                :match ${open}a
            """
        )

        with pytest.raises(InvalidPattern):
            check_schemas(config)

    def test_relative_link_with_attributes(self, make_config: ConfigFactory) -> None:
        """Relative links may not carry attributes."""
        config = make_config(
            """
            latest -> v2
                :mode 755
            """
        )

        with pytest.raises(InvalidLink, match="relative target"):
            check_schemas(config)


class TestIsRelativeTarget:
    """Tests for is_relative_target helper."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("releases/v2", True),
            ("../shared", True),
            ("/srv/data", False),
            ("@stem/rest", False),
            ("$base/x", False),
        ],
    )
    def test_classification(self, text: str, expected: bool) -> None:
        """Only targets starting with literal relative text are relative."""
        assert is_relative_target(parse_expression(text)) is expected
