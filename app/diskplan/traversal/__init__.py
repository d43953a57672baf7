"""Traversal engine.

This module walks schemas against a filesystem capability, binding
variables, matching existing entries and issuing the operations that make
the filesystem conform.
"""

from diskplan.traversal.check import check_schemas
from diskplan.traversal.engine import (
    MAX_LINK_DEPTH,
    MAX_NESTING_DEPTH,
    Extent,
    Traverser,
    apply,
    locate,
)
from diskplan.traversal.errors import (
    AmbiguousBinding,
    AssignmentMismatch,
    CapabilityError,
    Conflict,
    InvalidLink,
    InvalidPattern,
    NodeFailure,
    PatternMismatch,
    RecursiveSchema,
    SymlinkCycle,
    TraversalError,
    UndefinedDefinition,
    UndefinedVariable,
    UnresolvedPath,
)
from diskplan.traversal.results import (
    AppliedNode,
    Mode,
    Operation,
    OperationType,
    Outcome,
    TraversalReport,
)
from diskplan.traversal.stack import StackFrame, base_stack

__all__ = [
    "MAX_LINK_DEPTH",
    "MAX_NESTING_DEPTH",
    "AmbiguousBinding",
    "AppliedNode",
    "AssignmentMismatch",
    "CapabilityError",
    "Conflict",
    "Extent",
    "InvalidLink",
    "InvalidPattern",
    "Mode",
    "NodeFailure",
    "Operation",
    "OperationType",
    "Outcome",
    "PatternMismatch",
    "RecursiveSchema",
    "StackFrame",
    "SymlinkCycle",
    "TraversalError",
    "TraversalReport",
    "Traverser",
    "UndefinedDefinition",
    "UndefinedVariable",
    "UnresolvedPath",
    "apply",
    "base_stack",
    "check_schemas",
    "locate",
]
