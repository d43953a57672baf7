"""Unit tests for expression parsing."""

import pytest
from diskplan.schema.expression import (
    Expression,
    Special,
    Token,
    TokenKind,
    parse_expression,
)


class TestParseExpression:
    """Tests for parse_expression function."""

    def test_plain_text(self) -> None:
        """Text without references is one literal token."""
        expr = parse_expression("hello world")

        assert expr.tokens == (Token(TokenKind.TEXT, "hello world"),)
        assert expr.is_literal
        assert expr.literal() == "hello world"

    @pytest.mark.parametrize("text", ["$user", "${user}", "{user}"])
    def test_reference_forms(self, text: str) -> None:
        """All three reference forms produce a variable token."""
        expr = parse_expression(text)

        assert expr.tokens == (Token(TokenKind.VARIABLE, "user"),)
        assert expr.variables == ("user",)

    def test_mixed_tokens(self) -> None:
        """Text and references alternate in order."""
        expr = parse_expression("/home/${user}_backup/$NAME")

        assert expr.tokens == (
            Token(TokenKind.TEXT, "/home/"),
            Token(TokenKind.VARIABLE, "user"),
            Token(TokenKind.TEXT, "_backup/"),
            Token(TokenKind.SPECIAL, "NAME"),
        )
        assert expr.variables == ("user",)
        assert not expr.is_literal

    def test_specials_recognized(self) -> None:
        """Every Special name is parsed as a special token."""
        for special in Special:
            expr = parse_expression(f"${special.value}")
            assert expr.tokens == (Token(TokenKind.SPECIAL, special.value),)

    def test_lowercase_special_name_is_variable(self) -> None:
        """Specials are case-sensitive."""
        assert parse_expression("$path").variables == ("path",)

    def test_regex_quantifier_stays_literal(self) -> None:
        """Braces that do not enclose an identifier are literal text."""
        expr = parse_expression("[a-z]{2,3}$")

        assert expr.is_literal
        assert expr.literal() == "[a-z]{2,3}$"

    def test_empty(self) -> None:
        """Empty text is an empty literal."""
        expr = parse_expression("")

        assert expr.tokens == ()
        assert expr.literal() == ""


class TestExpression:
    """Tests for Expression helpers."""

    def test_literal_raises_for_references(self) -> None:
        """literal() refuses expressions with references."""
        with pytest.raises(ValueError, match="not a literal"):
            parse_expression("$x").literal()

    def test_str_uses_braced_form(self) -> None:
        """String form writes references braced."""
        assert str(parse_expression("a$b{c}")) == "a${b}${c}"

    def test_text_constructor(self) -> None:
        """Expression.text builds a literal."""
        assert Expression.text("abc").literal() == "abc"
        assert Expression.text("") == Expression()
