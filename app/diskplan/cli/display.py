"""Shared Rich display functions for traversal reports.

Provides the table and tree renderers and the summary line printed by the
build command.
"""

from rich.table import Table
from rich.tree import Tree

from diskplan.filesystem.models import EntryKind
from diskplan.traversal.results import AppliedNode, Mode, Outcome, TraversalReport
from diskplan.utils.formatting import console, format_mode

_OUTCOME_MARKERS: dict[Outcome, str] = {
    Outcome.CREATED: "+",
    Outcome.UPDATED: "~",
    Outcome.ALREADY_MATCHES: "=",
    Outcome.CONFLICT: "!",
    Outcome.FAILED: "x",
}

_OUTCOME_LABELS: dict[Outcome, str] = {
    Outcome.CREATED: "created",
    Outcome.UPDATED: "updated",
    Outcome.ALREADY_MATCHES: "unchanged",
    Outcome.CONFLICT: "conflict",
    Outcome.FAILED: "failed",
}


def _outcome_text(outcome: Outcome) -> str:
    style = f"outcome.{outcome.value}"
    return f"[{style}]{_OUTCOME_MARKERS[outcome]} {_OUTCOME_LABELS[outcome]}[/{style}]"


def _ownership(node: AppliedNode) -> str:
    if node.owner is None and node.group is None:
        return ""
    return f"{node.owner or '?'}:{node.group or '?'}"


def _details(node: AppliedNode) -> str:
    if node.error:
        return f"[error]{node.error}[/error]"
    if node.link_target is not None:
        return f"[muted]-> {node.link_target}[/muted]"
    return ""


def create_report_table(report: TraversalReport) -> Table:
    """Create a Rich table with one row per visited path.

    Args:
        report: Report returned by a traversal.

    Returns:
        Rich Table configured for report display.
    """
    title = "Planned Changes (Simulated)" if report.mode == Mode.SIMULATE else "Applied Changes"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Outcome", no_wrap=True)
    table.add_column("Kind", width=9)
    table.add_column("Path", no_wrap=True)
    table.add_column("Owner", no_wrap=True)
    table.add_column("Mode", no_wrap=True)
    table.add_column("Details")

    for node in report.walk():
        kind_style = f"kind.{node.kind.value}"
        table.add_row(
            _outcome_text(node.outcome),
            f"[{kind_style}]{node.kind.value}[/{kind_style}]",
            node.path,
            f"[muted]{_ownership(node)}[/muted]",
            f"[muted]{format_mode(node.mode) if node.mode is not None else ''}[/muted]",
            _details(node),
        )

    return table


def _label(node: AppliedNode, name: str) -> str:
    kind_style = f"kind.{node.kind.value}"
    suffix = "/" if node.kind == EntryKind.DIRECTORY else ""
    label = f"[{kind_style}]{name}{suffix}[/{kind_style}]  {_outcome_text(node.outcome)}"
    details = _details(node)
    if details:
        label = f"{label}  {details}"
    return label


def _add_branch(tree: Tree, node: AppliedNode) -> None:
    if node.link_tree is not None:
        linked = tree.add(f"[muted]via {node.link_tree.path}[/muted]")
        _add_children(linked, node.link_tree)
    _add_children(tree, node)


def _add_children(tree: Tree, node: AppliedNode) -> None:
    for child in node.children:
        name = child.path.rsplit("/", 1)[-1]
        _add_branch(tree.add(_label(child, name)), child)


def create_report_tree(report: TraversalReport) -> Tree:
    """Create a Rich tree mirroring the directory structure of a report.

    Symlinks that led into another stem show that stem's traversal as a
    ``via`` branch beneath the link.

    Args:
        report: Report returned by a traversal.

    Returns:
        Rich Tree rooted at the stem root.
    """
    if report.root is None:
        return Tree(f"[muted]{report.target} (nothing visited)[/muted]")
    tree = Tree(_label(report.root, report.root.path), guide_style="border")
    _add_branch(tree, report.root)
    return tree


def print_report_summary(report: TraversalReport) -> None:
    """Print one line counting the paths per outcome.

    Args:
        report: Report returned by a traversal.
    """
    counts = report.counts()
    parts = [
        f"[outcome.{outcome.value}]{counts[outcome]} {_OUTCOME_LABELS[outcome]}[/]"
        for outcome in Outcome
        if counts.get(outcome)
    ]
    operations = len(report.operations)
    verb = "would be issued" if report.mode == Mode.SIMULATE else "issued"
    noun = "operation" if operations == 1 else "operations"
    console.print()
    if parts:
        console.print(f"Summary: {', '.join(parts)}")
    console.print(f"[muted]{operations} {noun} {verb}.[/muted]")
