"""Interpolated expressions used in schema directive values.

Directive values are not resolved while parsing. They are kept as a small
sequence of tokens (literal text, variable references and built-in
specials) and evaluated against a binding environment during traversal.
"""

import re
from dataclasses import dataclass
from enum import Enum

IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# $name | ${name} | {name}
_REFERENCE = re.compile(
    r"\$\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}"
    r"|\$(?P<bare>[A-Za-z_][A-Za-z0-9_]*)"
    r"|\{(?P<plain>[A-Za-z_][A-Za-z0-9_]*)\}"
)


class TokenKind(str, Enum):
    """Kind of an expression token.

    Attributes:
        TEXT: Literal text copied verbatim.
        VARIABLE: Reference to a bound variable.
        SPECIAL: Reference to a built-in value derived from the current path.
    """

    TEXT = "text"
    VARIABLE = "variable"
    SPECIAL = "special"


class Special(str, Enum):
    """Built-in values available to every expression.

    Attributes:
        PATH: Path of the current entry relative to its stem root.
        FULL_PATH: Absolute path of the current entry.
        NAME: Name of the current entry.
        PARENT_PATH: Relative path of the parent entry.
        PARENT_FULL_PATH: Absolute path of the parent entry.
        PARENT_NAME: Name of the parent entry.
        ROOT_PATH: Absolute path of the stem root.
    """

    PATH = "PATH"
    FULL_PATH = "FULL_PATH"
    NAME = "NAME"
    PARENT_PATH = "PARENT_PATH"
    PARENT_FULL_PATH = "PARENT_FULL_PATH"
    PARENT_NAME = "PARENT_NAME"
    ROOT_PATH = "ROOT_PATH"


_SPECIAL_NAMES = frozenset(special.value for special in Special)


@dataclass(frozen=True, slots=True)
class Token:
    """One segment of an expression."""

    kind: TokenKind
    value: str

    def __str__(self) -> str:
        if self.kind == TokenKind.TEXT:
            return self.value
        return "${" + self.value + "}"


@dataclass(frozen=True, slots=True)
class Expression:
    """An ordered sequence of tokens evaluated lazily during traversal."""

    tokens: tuple[Token, ...] = ()

    def __str__(self) -> str:
        return "".join(str(token) for token in self.tokens)

    @property
    def variables(self) -> tuple[str, ...]:
        """Names of all variables referenced, in order of appearance."""
        return tuple(t.value for t in self.tokens if t.kind == TokenKind.VARIABLE)

    @property
    def is_literal(self) -> bool:
        """True if the expression contains only literal text."""
        return all(t.kind == TokenKind.TEXT for t in self.tokens)

    def literal(self) -> str:
        """Return the text of a literal expression.

        Raises:
            ValueError: If the expression references variables or specials.
        """
        if not self.is_literal:
            msg = f"Expression '{self}' is not a literal"
            raise ValueError(msg)
        return "".join(t.value for t in self.tokens)

    @classmethod
    def text(cls, value: str) -> "Expression":
        """Build a literal expression from plain text."""
        if not value:
            return cls()
        return cls((Token(TokenKind.TEXT, value),))

    @classmethod
    def variable(cls, name: str) -> "Expression":
        """Build an expression referencing a single variable."""
        return cls((Token(TokenKind.VARIABLE, name),))


def parse_expression(text: str) -> Expression:
    """Split a directive value into text, variable and special tokens.

    References take the forms ``$name``, ``${name}`` and ``{name}``. A
    ``$`` or ``{`` that does not introduce a valid identifier is kept as
    literal text. Upper-case names listed in :class:`Special` resolve to
    built-in values instead of variables.

    Args:
        text: Raw directive value.

    Returns:
        Parsed expression.
    """
    tokens: list[Token] = []
    position = 0
    for found in _REFERENCE.finditer(text):
        if found.start() > position:
            tokens.append(Token(TokenKind.TEXT, text[position : found.start()]))
        name = found.group("braced") or found.group("bare") or found.group("plain")
        kind = TokenKind.SPECIAL if name in _SPECIAL_NAMES else TokenKind.VARIABLE
        tokens.append(Token(kind, name))
        position = found.end()
    if position < len(text):
        tokens.append(Token(TokenKind.TEXT, text[position:]))
    return Expression(tuple(tokens))
