"""Unit tests for traversal result models."""

from diskplan.filesystem.models import EntryKind
from diskplan.traversal.results import (
    AppliedNode,
    Mode,
    Operation,
    OperationType,
    Outcome,
    TraversalReport,
)


def _report() -> TraversalReport:
    linked = AppliedNode(path="/other", kind=EntryKind.DIRECTORY)
    root = AppliedNode(
        path="/data",
        kind=EntryKind.DIRECTORY,
        outcome=Outcome.CREATED,
        mode=0o755,
        operations=[Operation(OperationType.CREATE_DIRECTORY, "/data")],
        children=[
            AppliedNode(
                path="/data/link",
                kind=EntryKind.SYMLINK,
                link_target="/other",
                link_tree=linked,
            ),
            AppliedNode(
                path="/data/file",
                kind=EntryKind.FILE,
                outcome=Outcome.CONFLICT,
                error="expected file, found directory",
            ),
        ],
    )
    return TraversalReport(mode=Mode.SIMULATE, stem="main", target="/data", root=root)


class TestOutcome:
    """Tests for Outcome enum."""

    def test_failures(self) -> None:
        """Only conflicts and failures count as failures."""
        assert [o for o in Outcome if o.is_failure] == [Outcome.CONFLICT, Outcome.FAILED]


class TestOperation:
    """Tests for Operation model."""

    def test_str_with_argument(self) -> None:
        """The argument is shown in parentheses."""
        op = Operation(OperationType.SET_PERMISSIONS, "/data", "0750")

        assert str(op) == "set_permissions /data (0750)"

    def test_str_without_argument(self) -> None:
        """Operations without an argument show type and path."""
        assert str(Operation(OperationType.CREATE_DIRECTORY, "/data")) == "create_directory /data"


class TestTraversalReport:
    """Tests for TraversalReport model."""

    def test_walk_visits_link_trees(self) -> None:
        """walk includes trees reached through symlinks."""
        paths = [node.path for node in _report().walk()]

        assert paths == ["/data", "/data/link", "/other", "/data/file"]

    def test_counts(self) -> None:
        """counts tallies outcomes."""
        counts = _report().counts()

        assert counts[Outcome.CREATED] == 1
        assert counts[Outcome.ALREADY_MATCHES] == 2
        assert counts[Outcome.CONFLICT] == 1

    def test_failures(self) -> None:
        """failures lists conflicting nodes."""
        report = _report()

        assert report.has_failures
        assert [node.path for node in report.failures()] == ["/data/file"]

    def test_find(self) -> None:
        """find returns the node for a path or None."""
        report = _report()

        node = report.find("/data/link")
        assert node is not None
        assert node.link_target == "/other"
        assert report.find("/missing") is None

    def test_empty_report(self) -> None:
        """A report without a tree has no failures."""
        report = TraversalReport(mode=Mode.APPLY, stem="main", target="/data")

        assert not report.has_failures
        assert report.to_dict()["tree"] is None

    def test_to_dict(self) -> None:
        """to_dict produces a nested, serializable structure."""
        data = _report().to_dict()

        assert data["mode"] == "simulate"
        assert data["summary"]["created"] == 1
        assert data["summary"]["failed"] == 0
        tree = data["tree"]
        assert tree["mode"] == "755"
        assert tree["operations"] == [
            {"type": "create_directory", "path": "/data", "argument": None}
        ]
        link, conflict = tree["children"]
        assert link["link_tree"]["path"] == "/other"
        assert conflict["error"] == "expected file, found directory"
        assert "children" not in conflict
