"""Abstract schema tree models.

A parsed schema is a tree of :class:`SchemaNode` objects. Directory nodes
carry a :class:`DirectorySchema` (variables, definitions and child
entries), file nodes carry a :class:`FileSchema` (content origin). All
models are immutable so that one compiled tree can be shared by every
stem, definition and include that refers to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from diskplan.schema.expression import Expression


class NodeKind(str, Enum):
    """Kind of entry a schema node produces.

    Attributes:
        DIRECTORY: A directory, possibly with child entries.
        FILE: A regular file.
        SYMLINK: A symbolic link; the linked entry follows the node's schema.
    """

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


@dataclass(frozen=True, slots=True)
class Binding:
    """Name of a schema entry: a fixed literal or a ``$variable`` binder.

    Attributes:
        name: The literal name, or the variable name without ``$``.
        is_variable: True for variable binders.
    """

    name: str
    is_variable: bool = False

    def __str__(self) -> str:
        if self.is_variable:
            return f"${self.name}"
        return self.name


@dataclass(frozen=True, slots=True)
class Attributes:
    """Ownership and permission directives of a node.

    Attributes:
        owner: Owner name expression, or None if not set.
        group: Group name expression, or None if not set.
        mode: Permission bits, or None if not set.
    """

    owner: Expression | None = None
    group: Expression | None = None
    mode: int | None = None

    def is_empty(self) -> bool:
        """True if no attribute directive was given."""
        return self.owner is None and self.group is None and self.mode is None


@dataclass(frozen=True, slots=True)
class DirectorySchema:
    """Contents of a directory node.

    Attributes:
        lets: Variables defined with ``:let``, in declaration order.
        defs: Reusable sub-schemas defined with ``:def``.
        entries: Child entries in declaration order.
    """

    lets: dict[str, Expression] = field(default_factory=dict)
    defs: dict[str, SchemaNode] = field(default_factory=dict)
    entries: tuple[tuple[Binding, SchemaNode], ...] = ()


@dataclass(frozen=True, slots=True)
class FileSchema:
    """Content origin of a file node.

    Attributes:
        source: Expression naming a file whose content is copied.
        content: Literal content expression.
    """

    source: Expression | None = None
    content: Expression | None = None


@dataclass(frozen=True, slots=True)
class SchemaNode:
    """One entry of the abstract schema tree.

    Attributes:
        schema: Directory or file schema of this node.
        line: Source line that introduced the node.
        line_number: 1-based line number, 0 for roots.
        match: Pattern a variable binder's value must match.
        avoid: Pattern a variable binder's value must not match.
        symlink: Link target expression; makes the node a symlink.
        uses: Names of ``:def`` definitions whose contents are merged in.
        includes: Schema files whose root contents are merged in.
        attributes: Owner, group and mode directives.
    """

    schema: DirectorySchema | FileSchema
    line: str = ""
    line_number: int = 0
    match: Expression | None = None
    avoid: Expression | None = None
    symlink: Expression | None = None
    uses: tuple[str, ...] = ()
    includes: tuple[str, ...] = ()
    attributes: Attributes = Attributes()

    @property
    def is_directory(self) -> bool:
        """True if the node (or the entry a symlink points to) is a directory."""
        return isinstance(self.schema, DirectorySchema)

    @property
    def kind(self) -> NodeKind:
        """Resolved kind of the node."""
        if self.symlink is not None:
            return NodeKind.SYMLINK
        if self.is_directory:
            return NodeKind.DIRECTORY
        return NodeKind.FILE

    @property
    def directory(self) -> DirectorySchema:
        """Directory schema, empty for file nodes."""
        if isinstance(self.schema, DirectorySchema):
            return self.schema
        return _EMPTY_DIRECTORY

    @property
    def file(self) -> FileSchema:
        """File schema, empty for directory nodes."""
        if isinstance(self.schema, FileSchema):
            return self.schema
        return _EMPTY_FILE


_EMPTY_DIRECTORY = DirectorySchema()
_EMPTY_FILE = FileSchema()
