"""Traversal and application engine.

Walks a stem's schema tree against a filesystem capability, binding
variables, matching existing entries and issuing the operations needed to
make the filesystem conform. Each visited path ends up Created, Updated,
AlreadyMatches, Conflict or Failed in the returned result tree.
"""

import logging
import posixpath
from collections.abc import Callable, Mapping
from enum import Enum

from diskplan.config.stems import Config, Stem
from diskplan.filesystem.base import Filesystem, split_path
from diskplan.filesystem.models import EntryKind, EntryStat
from diskplan.filesystem.physical import DiskFilesystem
from diskplan.filesystem.simulated import SimulatedFilesystem
from diskplan.schema.expression import Expression
from diskplan.schema.models import Binding, SchemaNode
from diskplan.traversal.check import check_schemas, is_plain_link
from diskplan.traversal.errors import (
    AmbiguousBinding,
    AssignmentMismatch,
    CapabilityError,
    Conflict,
    InvalidLink,
    NodeFailure,
    PatternMismatch,
    RecursiveSchema,
    SymlinkCycle,
    UnresolvedPath,
)
from diskplan.traversal.evaluate import PathContext, evaluate
from diskplan.traversal.expand import Expansion, expand
from diskplan.traversal.pattern import compile_pattern
from diskplan.traversal.results import (
    AppliedNode,
    Mode,
    Operation,
    OperationType,
    Outcome,
    TraversalReport,
)
from diskplan.traversal.stack import StackFrame, base_stack

logger = logging.getLogger(__name__)

# Longest chain of schema symlinks followed into other stems
MAX_LINK_DEPTH = 16

# Deepest chain of schema entries visited in one traversal
MAX_NESTING_DEPTH = 100


class Extent(str, Enum):
    """How much of the tree below the target is traversed.

    Attributes:
        FULL: Every existing, fixed and assigned entry below the target.
        RESTRICTED: Only the path down to the target itself.
    """

    FULL = "full"
    RESTRICTED = "restricted"


def _describe_entry(entry: EntryStat, resolved: EntryStat | None) -> str:
    if entry.kind != EntryKind.SYMLINK:
        return f"a {entry.kind.value}"
    if resolved is None:
        return f"a dangling symlink to {entry.link_target}"
    return f"a symlink to a {resolved.kind.value}"


class Traverser:
    """Applies schemas to one filesystem capability.

    Args:
        config: Stems, schema cache and name maps.
        filesystem: Filesystem to read from and issue operations to.
        variables: Externally assigned variables.
        mode: Recorded in the report; the filesystem decides what is touched.
        rehearsal: Log operations at debug level only.
    """

    def __init__(
        self,
        config: Config,
        filesystem: Filesystem,
        variables: Mapping[str, str] | None = None,
        mode: Mode = Mode.SIMULATE,
        rehearsal: bool = False,
    ) -> None:
        self._config = config
        self._fs = filesystem
        self._variables = dict(variables or {})
        self._mode = mode
        self._log_level = logging.DEBUG if rehearsal else logging.INFO
        self._operations: list[Operation] = []
        self._depth = 0
        # Seeded binder values: rejected (name -> value, reason) and accepted names
        self._rejected: dict[str, tuple[str, str]] = {}
        self._accepted: set[str] = set()

    def run(self, stem: Stem, target: str) -> TraversalReport:
        """Traverse from a stem's root down to ``target`` and below it.

        Raises:
            PatternMismatch: If a value given for a variable was rejected by
                every binder of that name the traversal reached.
        """
        report = TraversalReport(mode=self._mode, stem=stem.name, target=target)
        report.root = self._traverse_stem(stem, target, Extent.FULL, ())
        for name, (value, reason) in self._rejected.items():
            if name not in self._accepted:
                raise PatternMismatch(name, value, reason)
        report.operations = list(self._operations)
        return report

    # === Operations ===

    def _issue(
        self,
        applied: AppliedNode,
        op_type: OperationType,
        path: str,
        argument: str | None,
        action: Callable[[], None],
    ) -> None:
        operation = Operation(op_type, path, argument)
        logger.log(self._log_level, "[%s] %s", self._mode.value, operation)
        try:
            action()
        except OSError as e:
            raise CapabilityError(path, op_type.value, e) from e
        applied.operations.append(operation)
        self._operations.append(operation)

    def _fail(self, applied: AppliedNode, error: NodeFailure) -> None:
        applied.outcome = Outcome.CONFLICT if isinstance(error, Conflict) else Outcome.FAILED
        applied.error = str(error)
        logger.warning("%s", error)

    def _stat(self, path: str, follow_symlinks: bool = True) -> EntryStat | None:
        try:
            return self._fs.stat(path, follow_symlinks=follow_symlinks)
        except OSError as e:
            raise CapabilityError(path, "stat", e) from e

    # === Stems ===

    def _traverse_stem(
        self, stem: Stem, target: str, extent: Extent, chain: tuple[str, ...]
    ) -> AppliedNode:
        schema = self._config.schema_for(stem)
        applied = AppliedNode(path=stem.root, kind=EntryKind.DIRECTORY)
        remaining: list[str] = []
        if target != stem.root:
            remaining = split_path(posixpath.relpath(target, stem.root))
        try:
            self._create_ancestors(stem.root, applied)
        except NodeFailure as e:
            self._fail(applied, e)
            return applied
        context = PathContext(stem.root, stem.root)
        return self._visit(
            schema, context, base_stack(self._variables), remaining, extent, chain, applied
        )

    def _create_ancestors(self, path: str, applied: AppliedNode) -> None:
        missing: list[str] = []
        current = posixpath.dirname(path)
        while current != "/" and self._stat(current, follow_symlinks=False) is None:
            missing.append(current)
            current = posixpath.dirname(current)
        for ancestor in reversed(missing):
            self._issue(
                applied,
                OperationType.CREATE_DIRECTORY,
                ancestor,
                None,
                lambda p=ancestor: self._fs.create_directory(p),
            )

    # === Nodes ===

    def _visit(
        self,
        node: SchemaNode,
        context: PathContext,
        stack: StackFrame,
        remaining: list[str],
        extent: Extent,
        chain: tuple[str, ...],
        applied: AppliedNode | None = None,
    ) -> AppliedNode:
        if self._depth >= MAX_NESTING_DEPTH:
            msg = f"Schema nests more than {MAX_NESTING_DEPTH} entries deep at {context.path}"
            raise RecursiveSchema(msg)
        self._depth += 1
        try:
            return self._visit_node(node, context, stack, remaining, extent, chain, applied)
        finally:
            self._depth -= 1

    def _visit_node(
        self,
        node: SchemaNode,
        context: PathContext,
        stack: StackFrame,
        remaining: list[str],
        extent: Extent,
        chain: tuple[str, ...],
        applied: AppliedNode | None,
    ) -> AppliedNode:
        expansion = expand(node, stack, self._config.cache)
        scope = self._with_ownership(expansion, context)
        if applied is None:
            kind = EntryKind.DIRECTORY if node.is_directory else EntryKind.FILE
            applied = AppliedNode(path=context.path, kind=kind)
        if remaining and not node.is_directory:
            msg = f"{context.path} is a file in the schema; cannot descend to {remaining[0]}"
            raise UnresolvedPath(msg)
        try:
            if expansion.symlink is not None:
                applied.kind = EntryKind.SYMLINK
                target = evaluate(expansion.symlink, scope, context)
                self._visit_symlink(
                    expansion, target, scope, context, remaining, extent, chain, applied
                )
            elif node.is_directory:
                self._ensure_directory(context.path, scope, expansion.mode, applied)
                applied.children = self._traverse_children(
                    expansion, scope, context, remaining, extent, chain
                )
            else:
                self._ensure_file(context.path, expansion, scope, context, applied)
        except NodeFailure as e:
            self._fail(applied, e)
            return applied
        self._record_metadata(applied, context.path)
        return applied

    def _with_ownership(self, expansion: Expansion, context: PathContext) -> StackFrame:
        scope = expansion.scope
        owner, group = scope.owner, scope.group
        if expansion.owner is not None:
            owner = self._config.map_user(evaluate(expansion.owner, scope, context))
        if expansion.group is not None:
            group = self._config.map_group(evaluate(expansion.group, scope, context))
        return scope.with_ownership(owner, group)

    def _record_metadata(self, applied: AppliedNode, path: str) -> None:
        entry = self._stat(path)
        if entry is not None:
            applied.owner = entry.owner
            applied.group = entry.group
            applied.mode = entry.mode

    def _reconcile(
        self, path: str, scope: StackFrame, mode: int | None, applied: AppliedNode
    ) -> None:
        current = self._stat(path)
        if current is None:
            return
        issued = len(applied.operations)
        if scope.owner is not None and current.owner != scope.owner:
            owner = scope.owner
            self._issue(
                applied,
                OperationType.SET_OWNER,
                path,
                owner,
                lambda: self._fs.set_owner(path, owner),
            )
        if scope.group is not None and current.group != scope.group:
            group = scope.group
            self._issue(
                applied,
                OperationType.SET_GROUP,
                path,
                group,
                lambda: self._fs.set_group(path, group),
            )
        if mode is not None and current.mode != mode:
            self._issue(
                applied,
                OperationType.SET_PERMISSIONS,
                path,
                f"{mode:04o}",
                lambda: self._fs.set_permissions(path, mode),
            )
        if applied.outcome == Outcome.ALREADY_MATCHES and len(applied.operations) > issued:
            applied.outcome = Outcome.UPDATED

    def _ensure_directory(
        self, path: str, scope: StackFrame, mode: int | None, applied: AppliedNode
    ) -> None:
        entry = self._stat(path, follow_symlinks=False)
        if entry is None:
            self._issue(
                applied,
                OperationType.CREATE_DIRECTORY,
                path,
                None,
                lambda: self._fs.create_directory(path),
            )
            applied.outcome = Outcome.CREATED
        else:
            resolved = self._stat(path) if entry.kind == EntryKind.SYMLINK else entry
            if resolved is None or resolved.kind != EntryKind.DIRECTORY:
                raise Conflict(path, "a directory", _describe_entry(entry, resolved))
        self._reconcile(path, scope, mode, applied)

    def _ensure_file(
        self,
        path: str,
        expansion: Expansion,
        scope: StackFrame,
        context: PathContext,
        applied: AppliedNode,
    ) -> None:
        entry = self._stat(path, follow_symlinks=False)
        if entry is None:
            content, summary = self._content(path, expansion, scope, context)
            self._issue(
                applied,
                OperationType.CREATE_FILE,
                path,
                summary,
                lambda: self._fs.create_file(path, content),
            )
            applied.outcome = Outcome.CREATED
        else:
            resolved = self._stat(path) if entry.kind == EntryKind.SYMLINK else entry
            if resolved is None or resolved.kind != EntryKind.FILE:
                raise Conflict(path, "a file", _describe_entry(entry, resolved))
        self._reconcile(path, scope, expansion.mode, applied)

    def _content(
        self, path: str, expansion: Expansion, scope: StackFrame, context: PathContext
    ) -> tuple[bytes, str]:
        if expansion.source is not None:
            source = evaluate(expansion.source, scope, context)
            try:
                content = self._fs.read_file(source)
            except OSError as e:
                raise CapabilityError(path, f"read source {source}", e) from e
            return content, f"from {source}"
        if expansion.content is not None:
            content = evaluate(expansion.content, scope, context).encode("utf-8")
            return content, f"{len(content)} bytes"
        return b"", "empty"

    # === Symlinks ===

    def _resolve_link_target(self, target: str) -> str:
        if target.startswith("@"):
            name, _, rest = target[1:].partition("/")
            stem = self._config.stem(name)
            return posixpath.normpath(posixpath.join(stem.root, rest))
        return posixpath.normpath(target)

    def _ensure_link(self, path: str, target: str, applied: AppliedNode) -> None:
        entry = self._stat(path, follow_symlinks=False)
        if entry is None:
            self._issue(
                applied,
                OperationType.CREATE_SYMLINK,
                path,
                target,
                lambda: self._fs.create_symlink(path, target),
            )
            applied.outcome = Outcome.CREATED
        elif entry.kind != EntryKind.SYMLINK:
            raise Conflict(path, f"a symlink to {target}", f"a {entry.kind.value}")
        elif entry.link_target != target:
            raise Conflict(path, f"a symlink to {target}", f"a symlink to {entry.link_target}")

    def _visit_symlink(
        self,
        expansion: Expansion,
        target: str,
        scope: StackFrame,
        context: PathContext,
        remaining: list[str],
        extent: Extent,
        chain: tuple[str, ...],
        applied: AppliedNode,
    ) -> None:
        path = context.path
        applied.link_target = target

        if not target.startswith(("/", "@")):
            if not is_plain_link(expansion):
                msg = f"Symlink {path} -> {target} is relative but carries a schema"
                raise InvalidLink(msg)
            if remaining:
                msg = f"Cannot descend through relative symlink {path} to {remaining[0]}"
                raise UnresolvedPath(msg)
            self._ensure_link(path, target, applied)
            return

        target = self._resolve_link_target(target)
        applied.link_target = target
        if target == path or target.startswith(path + "/"):
            raise SymlinkCycle(path, chain, f"target {target} lies within the link itself")
        if target in chain:
            raise SymlinkCycle(path, chain, f"target {target} is already on the link chain")
        if len(chain) >= MAX_LINK_DEPTH:
            raise SymlinkCycle(path, chain, f"more than {MAX_LINK_DEPTH} links deep")

        entry = self._stat(path, follow_symlinks=False)
        if entry is not None and entry.kind != EntryKind.SYMLINK:
            raise Conflict(path, f"a symlink to {target}", f"a {entry.kind.value}")
        if entry is not None and entry.link_target != target:
            raise Conflict(path, f"a symlink to {target}", f"a symlink to {entry.link_target}")

        link_chain = chain + (path,)
        target_stem = self._config.stem_for_path(target)
        node = expansion.node
        if target_stem is not None:
            applied.link_tree = self._traverse_stem(
                target_stem, target, Extent.RESTRICTED, link_chain
            )
            failed = next((n for n in applied.link_tree.walk() if n.outcome.is_failure), None)
            if failed is not None:
                applied.outcome = Outcome.FAILED
                applied.error = f"Link target {target} could not be provisioned: {failed.error}"
                return
        else:
            self._create_ancestors(target, applied)

        if entry is None:
            self._issue(
                applied,
                OperationType.CREATE_SYMLINK,
                path,
                target,
                lambda: self._fs.create_symlink(path, target),
            )
            applied.outcome = Outcome.CREATED

        root = target_stem.root if target_stem is not None else "/"
        target_context = PathContext(root, target)
        if node.is_directory:
            self._ensure_directory(target, scope, expansion.mode, applied)
            applied.children = self._traverse_children(
                expansion, scope, target_context, remaining, extent, link_chain
            )
        else:
            self._ensure_file(target, expansion, scope, target_context, applied)

    # === Children ===

    def _traverse_children(
        self,
        expansion: Expansion,
        scope: StackFrame,
        context: PathContext,
        remaining: list[str],
        extent: Extent,
        chain: tuple[str, ...],
    ) -> list[AppliedNode]:
        fixed, binders = expansion.entries()
        if remaining:
            names, rest = [remaining[0]], remaining[1:]
        elif extent == Extent.RESTRICTED:
            return []
        else:
            names, rest = self._candidate_names(context, fixed, binders, scope), []

        results: list[AppliedNode] = []
        for name in names:
            bound = self._bind(name, fixed, binders, scope, context, from_path=bool(remaining))
            child_context = context.join(name)
            if bound is None:
                if remaining:
                    msg = f"No schema within {context.path} was able to produce {name}"
                    raise UnresolvedPath(msg)
                logger.warning("No schema entry matches %s; leaving it alone", child_context.path)
                continue
            child, child_stack = bound
            results.append(self._visit(child, child_context, child_stack, rest, extent, chain))
        return results

    def _candidate_names(
        self,
        context: PathContext,
        fixed: dict[str, SchemaNode],
        binders: list[tuple[Binding, SchemaNode]],
        scope: StackFrame,
    ) -> list[str]:
        names = set(fixed)
        try:
            names.update(name for name, _ in self._fs.list_directory(context.path))
        except OSError as e:
            raise CapabilityError(context.path, "list", e) from e
        for binding, node in binders:
            value = self._seed_value(binding, scope, context)
            if value is None:
                continue
            if not value or "/" in value or value in (".", ".."):
                self._rejected.setdefault(binding.name, (value, "a single path component"))
                continue
            pattern = compile_pattern(node, scope, context)
            if not pattern.accepts(value):
                logger.debug("%s rejects %s=%s", pattern.describe(), binding.name, value)
                self._rejected.setdefault(binding.name, (value, pattern.describe()))
                continue
            self._accepted.add(binding.name)
            names.add(value)
        return sorted(names)

    def _seed_value(
        self, binding: Binding, scope: StackFrame, context: PathContext
    ) -> str | None:
        """Value a binder should produce even if no such entry exists yet.

        External assignments and ``:let`` definitions seed a binder. A value
        bound by an enclosing binder of the same name does not, otherwise a
        recursive schema would nest that value forever.
        """
        for frame in scope.frames():
            if binding.name in frame.lets:
                return evaluate(Expression.variable(binding.name), scope, context)
            if binding.name in frame.values:
                return frame.values[binding.name] if frame.parent is None else None
        return None

    def _bind(
        self,
        name: str,
        fixed: dict[str, SchemaNode],
        binders: list[tuple[Binding, SchemaNode]],
        scope: StackFrame,
        context: PathContext,
        from_path: bool,
    ) -> tuple[SchemaNode, StackFrame] | None:
        if name in fixed:
            return fixed[name], scope
        matches = [
            (binding, node)
            for binding, node in binders
            if compile_pattern(node, scope, context).accepts(name)
        ]
        if not matches:
            return None
        if len(matches) > 1:
            claimants = ", ".join(str(binding) for binding, _ in matches)
            msg = f"'{name}' in {context.path} is matched by more than one entry: {claimants}"
            raise AmbiguousBinding(msg)
        binding, node = matches[0]
        if from_path:
            assigned = self._variables.get(binding.name)
            if assigned is not None and assigned != name:
                raise AssignmentMismatch(binding.name, assigned, name)
        return node, scope.bind(binding.name, name)


def locate(config: Config, target: str | None = None, stem: str | None = None) -> tuple[Stem, str]:
    """Choose the starting stem and the absolute target path.

    A relative target is taken relative to the chosen stem's root. Without
    a target the stem root is the target; the stem then comes from
    ``stem`` or must be the only one configured.

    Raises:
        ConfigError: If ``stem`` names no configured stem.
        UnresolvedPath: If no single stem can be chosen or the target lies
            outside the chosen stem.
    """
    if stem is not None:
        chosen = config.stem(stem)
    elif target is not None and target.startswith("/"):
        found = config.stem_for_path(posixpath.normpath(target))
        if found is None:
            raise UnresolvedPath(f"No stem contains {target}")
        chosen = found
    elif len(config.stems) == 1:
        chosen = config.stems[0]
    elif not config.stems:
        raise UnresolvedPath("No stems are configured")
    else:
        raise UnresolvedPath("Several stems are configured; give an absolute target or a stem")

    if target is None:
        return chosen, chosen.root
    path = posixpath.normpath(posixpath.join(chosen.root, target))
    if not chosen.contains(path):
        raise UnresolvedPath(f"{path} is not within stem '{chosen.name}' ({chosen.root})")
    return chosen, path


def apply(
    config: Config,
    target: str | None = None,
    mode: Mode = Mode.SIMULATE,
    variables: Mapping[str, str] | None = None,
    filesystem: Filesystem | None = None,
    stem: str | None = None,
) -> TraversalReport:
    """Make a filesystem conform to the configured schemas.

    In Simulate mode every operation is applied to a copy-on-write overlay
    of ``filesystem``, which is never modified. In Apply mode a simulated
    rehearsal runs first, so errors that abort the whole invocation are
    raised before the first real operation is issued.

    Args:
        config: Stems, schema cache and name maps.
        target: Path to provision; defaults to the stem root.
        mode: Simulate (default) or Apply.
        variables: Externally assigned variables, e.g. from ``--vars``.
        filesystem: Filesystem to inspect and modify; defaults to the disk.
        stem: Name of the stem to start from.

    Returns:
        Report with the result tree and the operations issued.

    Raises:
        ParseError: If a schema cannot be parsed.
        TraversalError: If the schema or the invocation is unusable.
        ConfigError: If ``stem`` names no configured stem.
    """
    chosen, path = locate(config, target, stem)
    check_schemas(config, variables)
    base = filesystem if filesystem is not None else DiskFilesystem()

    if mode == Mode.SIMULATE:
        return Traverser(config, SimulatedFilesystem(base), variables, mode).run(chosen, path)

    Traverser(config, SimulatedFilesystem(base), variables, mode, rehearsal=True).run(chosen, path)
    return Traverser(config, base, variables, mode).run(chosen, path)
