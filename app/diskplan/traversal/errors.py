"""Traversal error hierarchy.

:class:`TraversalError` subclasses indicate that the schema or the
invocation is unusable and abort the whole run. :class:`NodeFailure`
subclasses are local to one path: they are recorded in the result tree,
prune that path's subtree and let the rest of the traversal continue.
"""

from diskplan.core.errors import DiskplanError


class TraversalError(DiskplanError):
    """Base exception for errors that abort a traversal."""


class UndefinedVariable(TraversalError):
    """Raised when an expression references a variable bound in no enclosing scope."""

    def __init__(self, name: str, context: str = "") -> None:
        self.name = name
        message = f"Undefined variable '${name}'"
        if context:
            message = f"{message} in {context}"
        super().__init__(message)


class UndefinedDefinition(TraversalError):
    """Raised when ``:use`` names a definition that is not in scope."""

    def __init__(self, name: str, context: str = "") -> None:
        self.name = name
        message = f"No definition named '{name}' is in scope"
        if context:
            message = f"{message} for {context}"
        super().__init__(message)


class PatternMismatch(TraversalError):
    """Raised when an assigned variable value fails its binder's pattern."""

    def __init__(self, variable: str, value: str, pattern: str) -> None:
        self.variable = variable
        self.value = value
        self.pattern = pattern
        super().__init__(f"Value '{value}' for ${variable} does not satisfy {pattern}")


class InvalidPattern(TraversalError):
    """Raised when an interpolated ``:match``/``:avoid`` is not a valid regex."""


class AssignmentMismatch(TraversalError):
    """Raised when a target path and a variable assignment disagree."""

    def __init__(self, variable: str, assigned: str, found: str) -> None:
        self.variable = variable
        self.assigned = assigned
        self.found = found
        super().__init__(
            f"Target path binds ${variable} to '{found}' but it was assigned '{assigned}'"
        )


class UnresolvedPath(TraversalError):
    """Raised when no schema entry can produce a component of the target path."""


class AmbiguousBinding(TraversalError):
    """Raised when more than one schema entry claims the same name."""


class RecursiveSchema(TraversalError):
    """Raised when a schema would nest without end."""


class NodeFailure(DiskplanError):
    """Base exception for failures local to one path."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)


class Conflict(NodeFailure):
    """Existing filesystem state contradicts the schema.

    Attributes:
        expected: Description of the state the schema demands.
        actual: Description of the state found on the filesystem.
    """

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(path, f"Expected {expected} at {path}, found {actual}")


class SymlinkCycle(NodeFailure):
    """Symlink resolution revisited its own chain or exceeded the depth limit."""

    def __init__(self, path: str, chain: tuple[str, ...], reason: str) -> None:
        self.chain = chain
        super().__init__(path, f"Symlink cycle at {path}: {reason}")


class CapabilityError(NodeFailure):
    """The filesystem refused an operation (e.g. permission denied)."""

    def __init__(self, path: str, operation: str, error: OSError) -> None:
        self.operation = operation
        self.error = error
        reason = error.strerror or str(error)
        super().__init__(path, f"{operation} failed for {path}: {reason}")


class InvalidLink(TraversalError):
    """Raised when a symlink with a relative target also carries a schema."""
