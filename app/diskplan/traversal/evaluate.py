"""Evaluation of expressions against the binding environment."""

import posixpath
from dataclasses import dataclass

from diskplan.schema.expression import Expression, Special, TokenKind
from diskplan.traversal.errors import UndefinedVariable
from diskplan.traversal.stack import StackFrame

# Stands in for every value when checking a schema without a filesystem
PLACEHOLDER = "placeholder"


@dataclass(frozen=True, slots=True)
class PathContext:
    """Location the expression is evaluated at.

    Attributes:
        root: Absolute root directory of the stem being traversed.
        path: Absolute path of the current entry.
    """

    root: str
    path: str

    @property
    def relative(self) -> str:
        """Path of the current entry relative to the root."""
        if self.path == self.root:
            return ""
        return posixpath.relpath(self.path, self.root)

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    @property
    def parent(self) -> "PathContext":
        """Context of the parent entry (the root is its own parent)."""
        if self.path == self.root:
            return self
        return PathContext(self.root, posixpath.dirname(self.path))

    def join(self, name: str) -> "PathContext":
        """Context of a child entry."""
        return PathContext(self.root, posixpath.join(self.path, name))

    def special(self, special: Special) -> str:
        """Return the value of a built-in special."""
        values = {
            Special.PATH: self.relative,
            Special.FULL_PATH: self.path,
            Special.NAME: self.name,
            Special.PARENT_PATH: self.parent.relative,
            Special.PARENT_FULL_PATH: self.parent.path,
            Special.PARENT_NAME: self.parent.name,
            Special.ROOT_PATH: self.root,
        }
        return values[special]


def evaluate(
    expression: Expression,
    stack: StackFrame,
    context: PathContext | None,
    _resolving: frozenset[tuple[int, str]] = frozenset(),
) -> str:
    """Evaluate an expression in the given scope.

    ``:let`` values are evaluated where they are used, so a definition may
    refer to variables bound further down the tree. A definition that
    refers to its own name sees the next outer binding of that name.

    Args:
        expression: Expression to evaluate.
        stack: Innermost scope.
        context: Current location; None substitutes a placeholder for
            every special, for static checks.

    Returns:
        The expression's text.

    Raises:
        UndefinedVariable: If a variable is bound in no enclosing scope.
    """
    parts: list[str] = []
    for token in expression.tokens:
        if token.kind == TokenKind.TEXT:
            parts.append(token.value)
        elif token.kind == TokenKind.SPECIAL:
            parts.append(PLACEHOLDER if context is None else context.special(Special(token.value)))
        else:
            parts.append(_lookup(token.value, stack, context, _resolving))
    return "".join(parts)


def _lookup(
    name: str,
    stack: StackFrame,
    context: PathContext | None,
    resolving: frozenset[tuple[int, str]],
) -> str:
    for frame in stack.frames():
        if name in frame.values:
            return frame.values[name]
        if name in frame.lets:
            key = (id(frame), name)
            if key in resolving:
                continue
            return evaluate(frame.lets[name], stack, context, resolving | {key})
    raise UndefinedVariable(name)
