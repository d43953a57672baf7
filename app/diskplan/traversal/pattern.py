"""Compiled ``:match``/``:avoid`` patterns of variable binders."""

import re
from dataclasses import dataclass

from diskplan.schema.models import SchemaNode
from diskplan.traversal.errors import InvalidPattern
from diskplan.traversal.evaluate import PathContext, evaluate
from diskplan.traversal.stack import StackFrame


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """Anchored regular expressions a binder's value must satisfy.

    Attributes:
        match: Pattern the whole value must match, None to accept any name.
        avoid: Pattern the whole value must not match, None to avoid nothing.
    """

    match: re.Pattern[str] | None = None
    avoid: re.Pattern[str] | None = None

    def accepts(self, name: str) -> bool:
        """True if ``name`` satisfies the match and not the avoid pattern."""
        if self.match is not None and self.match.fullmatch(name) is None:
            return False
        if self.avoid is not None and self.avoid.fullmatch(name) is not None:
            return False
        return True

    def describe(self) -> str:
        """Human-readable form used in error messages."""
        parts = []
        if self.match is not None:
            parts.append(f":match {self.match.pattern}")
        if self.avoid is not None:
            parts.append(f":avoid {self.avoid.pattern}")
        return ", ".join(parts) or "any name"


def _compile(text: str, node: SchemaNode) -> re.Pattern[str]:
    try:
        return re.compile(text)
    except re.error as e:
        msg = f"Invalid pattern '{text}' on line {node.line_number}: {e}"
        raise InvalidPattern(msg) from e


def compile_pattern(
    node: SchemaNode, stack: StackFrame, context: PathContext | None
) -> CompiledPattern:
    """Evaluate and compile a binder's patterns in the parent scope.

    Raises:
        UndefinedVariable: If a pattern references an unbound variable.
        InvalidPattern: If the evaluated pattern is not a valid regex.
    """
    match = avoid = None
    if node.match is not None:
        match = _compile(evaluate(node.match, stack, context), node)
    if node.avoid is not None:
        avoid = _compile(evaluate(node.avoid, stack, context), node)
    return CompiledPattern(match=match, avoid=avoid)
