"""Variable binding environment.

The environment is an immutable chain of :class:`StackFrame` objects.
Entering a schema node pushes a new frame on top of its parent's; leaving
the node simply drops the reference, so sibling subtrees never observe
each other's bindings. Each frame also carries the owner and group in
effect at that level, which children inherit.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace

from diskplan.schema.expression import Expression
from diskplan.schema.models import SchemaNode


@dataclass(frozen=True, slots=True)
class StackFrame:
    """One scope of the binding environment.

    Attributes:
        parent: Enclosing scope, None for the outermost frame.
        values: Variables with a concrete value (binders, assignments).
        lets: Variables defined by ``:let``, evaluated lazily.
        defs: Definitions available to ``:use``.
        owner: Owner in effect, inherited from the nearest explicit setting.
        group: Group in effect, inherited from the nearest explicit setting.
    """

    parent: "StackFrame | None" = None
    values: Mapping[str, str] = field(default_factory=dict)
    lets: Mapping[str, Expression] = field(default_factory=dict)
    defs: Mapping[str, SchemaNode] = field(default_factory=dict)
    owner: str | None = None
    group: str | None = None

    def push(
        self,
        *,
        values: Mapping[str, str] | None = None,
        lets: Mapping[str, Expression] | None = None,
        defs: Mapping[str, SchemaNode] | None = None,
    ) -> "StackFrame":
        """Return a child scope layered over this one."""
        return StackFrame(
            parent=self,
            values=dict(values or {}),
            lets=dict(lets or {}),
            defs=dict(defs or {}),
            owner=self.owner,
            group=self.group,
        )

    def bind(self, name: str, value: str) -> "StackFrame":
        """Return a child scope binding one variable to a value."""
        return self.push(values={name: value})

    def with_ownership(self, owner: str | None, group: str | None) -> "StackFrame":
        """Return this scope with the owner and group in effect replaced."""
        return replace(self, owner=owner, group=group)

    def frames(self) -> Iterator["StackFrame"]:
        """Iterate from this scope outwards."""
        frame: StackFrame | None = self
        while frame is not None:
            yield frame
            frame = frame.parent

    def find_definition(self, name: str) -> SchemaNode | None:
        """Return the nearest definition called ``name``."""
        for frame in self.frames():
            definition = frame.defs.get(name)
            if definition is not None:
                return definition
        return None

    def is_bound(self, name: str) -> bool:
        """True if any scope defines the variable."""
        return any(name in frame.values or name in frame.lets for frame in self.frames())


def base_stack(variables: Mapping[str, str] | None = None) -> StackFrame:
    """Return the outermost scope holding externally assigned variables."""
    return StackFrame(values=dict(variables or {}))
