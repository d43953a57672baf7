"""Expansion of ``:use`` and ``:include`` into a merged view of a node.

A node together with the definitions it uses and the schemas it includes
acts as one entry. Directives are taken from the first node that sets
them (the node itself wins over what it uses), while child entries, lets
and definitions are merged in order.
"""

import logging
from dataclasses import dataclass

from diskplan.schema.cache import SchemaCache
from diskplan.schema.expression import Expression
from diskplan.schema.models import Binding, SchemaNode
from diskplan.traversal.errors import AmbiguousBinding, UndefinedDefinition
from diskplan.traversal.stack import StackFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Expansion:
    """A node merged with everything it uses and includes.

    Attributes:
        nodes: The node first, then used definitions and included roots.
        scope: Scope holding the merged lets and definitions, layered over
            the scope the node was entered with.
    """

    nodes: tuple[SchemaNode, ...]
    scope: StackFrame

    @property
    def node(self) -> SchemaNode:
        return self.nodes[0]

    @property
    def symlink(self) -> Expression | None:
        return next((n.symlink for n in self.nodes if n.symlink is not None), None)

    @property
    def owner(self) -> Expression | None:
        return next((n.attributes.owner for n in self.nodes if n.attributes.owner), None)

    @property
    def group(self) -> Expression | None:
        return next((n.attributes.group for n in self.nodes if n.attributes.group), None)

    @property
    def mode(self) -> int | None:
        return next((n.attributes.mode for n in self.nodes if n.attributes.mode is not None), None)

    @property
    def source(self) -> Expression | None:
        return next((n.file.source for n in self.nodes if n.file.source is not None), None)

    @property
    def content(self) -> Expression | None:
        return next((n.file.content for n in self.nodes if n.file.content is not None), None)

    @property
    def has_attributes(self) -> bool:
        return any(not n.attributes.is_empty() for n in self.nodes)

    @property
    def has_children(self) -> bool:
        return any(n.directory.entries for n in self.nodes)

    def entries(self) -> tuple[dict[str, SchemaNode], list[tuple[Binding, SchemaNode]]]:
        """Split the merged child entries into fixed names and variable binders.

        Raises:
            AmbiguousBinding: If two merged nodes declare the same fixed name.
        """
        fixed: dict[str, SchemaNode] = {}
        variables: list[tuple[Binding, SchemaNode]] = []
        for node in self.nodes:
            for binding, child in node.directory.entries:
                if not binding.is_variable:
                    if binding.name in fixed:
                        msg = (
                            f"'{binding.name}' is declared more than once for "
                            f"'{self.node.line or '<root>'}' (line {child.line_number})"
                        )
                        raise AmbiguousBinding(msg)
                    fixed[binding.name] = child
                else:
                    variables.append((binding, child))
        return fixed, variables


def expand(node: SchemaNode, stack: StackFrame, cache: SchemaCache) -> Expansion:
    """Merge a node with its ``:use`` definitions and ``:include`` schemas.

    Definitions are looked up in the node's own definitions, then in those
    merged so far, then in the enclosing scopes.

    Args:
        node: Node being entered.
        stack: Scope the node is entered with (including its own binding).
        cache: Cache used to load included schemas.

    Returns:
        The merged expansion with its scope.

    Raises:
        UndefinedDefinition: If a used definition is not in scope.
        ParseError: If an included schema cannot be loaded.
    """
    nodes: list[SchemaNode] = []
    seen: set[int] = set()
    lets: dict[str, Expression] = {}
    defs: dict[str, SchemaNode] = {}

    def add(current: SchemaNode) -> None:
        seen.add(id(current))
        nodes.append(current)
        for name, expression in current.directory.lets.items():
            lets.setdefault(name, expression)
        for name, definition in current.directory.defs.items():
            defs.setdefault(name, definition)
        for include in current.includes:
            included = cache.load(include)
            if id(included) not in seen:
                logger.debug("Including %s into line %d", include, node.line_number)
                add(included)
        for use in current.uses:
            definition = defs.get(use) or stack.find_definition(use)
            if definition is None:
                context = f"'{current.line}' (line {current.line_number})"
                raise UndefinedDefinition(use, context)
            if id(definition) not in seen:
                add(definition)

    add(node)
    return Expansion(nodes=tuple(nodes), scope=stack.push(lets=lets, defs=defs))
