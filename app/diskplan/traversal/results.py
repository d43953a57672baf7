"""Operations and the result tree produced by a traversal."""

from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from diskplan.filesystem.models import EntryKind


class Mode(str, Enum):
    """Whether operations reach the real filesystem.

    Attributes:
        SIMULATE: Compute and record operations against an overlay only.
        APPLY: Issue operations to the filesystem as they are encountered.
    """

    SIMULATE = "simulate"
    APPLY = "apply"


class OperationType(str, Enum):
    """Kind of filesystem change.

    Attributes:
        CREATE_DIRECTORY: Create a directory.
        CREATE_FILE: Create a file with content.
        CREATE_SYMLINK: Create a symbolic link.
        SET_OWNER: Change the owning user.
        SET_GROUP: Change the owning group.
        SET_PERMISSIONS: Change the permission bits.
    """

    CREATE_DIRECTORY = "create_directory"
    CREATE_FILE = "create_file"
    CREATE_SYMLINK = "create_symlink"
    SET_OWNER = "set_owner"
    SET_GROUP = "set_group"
    SET_PERMISSIONS = "set_permissions"


class Outcome(str, Enum):
    """Terminal state of one visited path.

    Attributes:
        CREATED: The entry was created.
        UPDATED: The entry existed; its metadata was changed.
        ALREADY_MATCHES: The entry existed and matched the schema.
        CONFLICT: Existing state contradicts the schema; subtree skipped.
        FAILED: An operation failed or a symlink cycle was found; subtree skipped.
    """

    CREATED = "created"
    UPDATED = "updated"
    ALREADY_MATCHES = "already_matches"
    CONFLICT = "conflict"
    FAILED = "failed"

    @property
    def is_failure(self) -> bool:
        return self in (Outcome.CONFLICT, Outcome.FAILED)


@dataclass(frozen=True, slots=True)
class Operation:
    """One atomic filesystem change.

    Attributes:
        op_type: Kind of change.
        path: Absolute path the change applies to.
        argument: Owner, group, octal mode, link target or content summary.
    """

    op_type: OperationType
    path: str
    argument: str | None = None

    def __str__(self) -> str:
        if self.argument is None:
            return f"{self.op_type.value} {self.path}"
        return f"{self.op_type.value} {self.path} ({self.argument})"


@dataclass(slots=True)
class AppliedNode:
    """Result for one visited path.

    Attributes:
        path: Absolute path.
        kind: Kind the schema demands at this path.
        outcome: Terminal state reached.
        owner: Owner after the traversal, if the entry exists.
        group: Group after the traversal, if the entry exists.
        mode: Permission bits after the traversal, if the entry exists.
        link_target: Target of a symlink entry.
        operations: Operations issued for this path, in order.
        error: Description of a conflict or failure.
        children: Results for child entries.
        link_tree: Traversal of the stem a symlink points into.
    """

    path: str
    kind: EntryKind
    outcome: Outcome = Outcome.ALREADY_MATCHES
    owner: str | None = None
    group: str | None = None
    mode: int | None = None
    link_target: str | None = None
    operations: list[Operation] = field(default_factory=list)
    error: str | None = None
    children: list["AppliedNode"] = field(default_factory=list)
    link_tree: "AppliedNode | None" = None

    def walk(self) -> Iterator["AppliedNode"]:
        """Iterate depth-first over this node, linked trees and children."""
        yield self
        if self.link_tree is not None:
            yield from self.link_tree.walk()
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "path": self.path,
            "kind": self.kind.value,
            "outcome": self.outcome.value,
            "owner": self.owner,
            "group": self.group,
            "mode": f"{self.mode:o}" if self.mode is not None else None,
            "operations": [
                {"type": op.op_type.value, "path": op.path, "argument": op.argument}
                for op in self.operations
            ],
        }
        if self.link_target is not None:
            data["link_target"] = self.link_target
        if self.error is not None:
            data["error"] = self.error
        if self.link_tree is not None:
            data["link_tree"] = self.link_tree.to_dict()
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(slots=True)
class TraversalReport:
    """Outcome of one invocation.

    Attributes:
        mode: Simulate or Apply.
        stem: Name of the stem the traversal started from.
        target: Absolute target path.
        root: Result tree rooted at the stem root.
        operations: Every operation in the order it was issued.
    """

    mode: Mode
    stem: str
    target: str
    root: AppliedNode | None = None
    operations: list[Operation] = field(default_factory=list)

    def walk(self) -> Iterator[AppliedNode]:
        """Iterate over every node of the result tree."""
        if self.root is not None:
            yield from self.root.walk()

    def counts(self) -> Counter[Outcome]:
        """Number of paths per outcome."""
        return Counter(node.outcome for node in self.walk())

    def failures(self) -> list[AppliedNode]:
        """Nodes that ended in a conflict or failure."""
        return [node for node in self.walk() if node.outcome.is_failure]

    @property
    def has_failures(self) -> bool:
        return any(node.outcome.is_failure for node in self.walk())

    def find(self, path: str) -> AppliedNode | None:
        """Return the first result for a path."""
        return next((node for node in self.walk() if node.path == path), None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        counts = self.counts()
        return {
            "mode": self.mode.value,
            "stem": self.stem,
            "target": self.target,
            "summary": {outcome.value: counts.get(outcome, 0) for outcome in Outcome},
            "tree": self.root.to_dict() if self.root is not None else None,
        }
