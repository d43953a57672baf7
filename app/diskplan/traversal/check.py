"""Static validation of schemas before any traversal.

Every stem's schema is walked once with placeholder values for variable
binders. Each directive expression is evaluated in the scope it would
see during traversal, so references to variables or definitions that no
enclosing scope provides are reported before the filesystem is touched.
"""

import logging
from collections.abc import Mapping

from diskplan.config.stems import Config
from diskplan.schema.expression import Expression, TokenKind
from diskplan.schema.models import SchemaNode
from diskplan.traversal.errors import InvalidLink, RecursiveSchema, UndefinedVariable
from diskplan.traversal.evaluate import PLACEHOLDER, evaluate
from diskplan.traversal.expand import Expansion, expand
from diskplan.traversal.pattern import compile_pattern
from diskplan.traversal.stack import StackFrame, base_stack

logger = logging.getLogger(__name__)


def is_relative_target(expression: Expression) -> bool:
    """True if a link target expression is certainly a relative path."""
    if not expression.tokens:
        return True
    first = expression.tokens[0]
    return first.kind == TokenKind.TEXT and not first.value.startswith(("/", "@"))


def is_plain_link(expansion: Expansion) -> bool:
    """True if a symlink node carries nothing but its target."""
    return (
        len(expansion.nodes) == 1
        and not expansion.has_children
        and not expansion.has_attributes
    )


class _Checker:
    def __init__(self, config: Config) -> None:
        self._cache = config.cache
        # Node id -> number of binders crossed when the node was entered
        self._active: dict[int, int] = {}
        self._binders = 0

    def _evaluate(self, expression: Expression, scope: StackFrame, node: SchemaNode) -> None:
        try:
            evaluate(expression, scope, None)
        except UndefinedVariable as e:
            raise UndefinedVariable(e.name, _describe(node)) from None

    def check(self, node: SchemaNode, stack: StackFrame) -> None:
        entered = self._active.get(id(node))
        if entered is not None:
            # Reuse below a binder ends where the filesystem runs out of entries
            if entered == self._binders:
                msg = (
                    f"{_describe(node)} contains itself through fixed entries only, "
                    "so its tree would never end"
                )
                raise RecursiveSchema(msg)
            return
        self._active[id(node)] = self._binders
        try:
            self._check(node, stack)
        finally:
            del self._active[id(node)]

    def _check(self, node: SchemaNode, stack: StackFrame) -> None:
        expansion = expand(node, stack, self._cache)
        scope = expansion.scope
        for expression in (
            expansion.owner,
            expansion.group,
            expansion.source,
            expansion.content,
            expansion.symlink,
        ):
            if expression is not None:
                self._evaluate(expression, scope, node)

        symlink = expansion.symlink
        if symlink is not None and is_relative_target(symlink) and not is_plain_link(expansion):
            msg = (
                f"Symlink {_describe(node)} has a relative target; only links without "
                "children, attributes or reuse may be relative"
            )
            raise InvalidLink(msg)

        if not node.is_directory:
            return
        fixed, binders = expansion.entries()
        for child in fixed.values():
            self.check(child, scope)
        for binding, child in binders:
            try:
                compile_pattern(child, scope, None)
            except UndefinedVariable as e:
                raise UndefinedVariable(e.name, _describe(child)) from None
            self._binders += 1
            try:
                self.check(child, scope.bind(binding.name, PLACEHOLDER))
            finally:
                self._binders -= 1


def _describe(node: SchemaNode) -> str:
    if not node.line:
        return "the schema root"
    return f"'{node.line}' (line {node.line_number})"


def check_schemas(config: Config, variables: Mapping[str, str] | None = None) -> None:
    """Validate every stem's schema.

    Args:
        config: Configuration holding the stems.
        variables: Externally assigned variables, visible everywhere.

    Raises:
        ParseError: If a schema or an included schema cannot be parsed.
        UndefinedVariable: If an expression references an unbound variable.
        UndefinedDefinition: If ``:use`` names a definition not in scope.
        AmbiguousBinding: If merged nodes declare the same fixed name twice.
        InvalidLink: If a relative symlink carries a schema.
        RecursiveSchema: If an entry contains itself through fixed entries only.
    """
    checker = _Checker(config)
    for stem in config.stems:
        logger.debug("Checking schema of stem %s", stem.name)
        checker.check(config.schema_for(stem), base_stack(variables))
