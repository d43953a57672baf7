"""Unit tests for report display functions."""

import pytest
from diskplan.cli.display import create_report_table, create_report_tree, print_report_summary
from diskplan.core.theme import get_theme
from diskplan.filesystem.models import EntryKind
from diskplan.traversal.results import (
    AppliedNode,
    Mode,
    Operation,
    OperationType,
    Outcome,
    TraversalReport,
)
from rich.console import Console


def _report(mode: Mode = Mode.SIMULATE) -> TraversalReport:
    op = Operation(OperationType.CREATE_DIRECTORY, "/data/docs")
    root = AppliedNode(
        path="/data",
        kind=EntryKind.DIRECTORY,
        children=[
            AppliedNode(
                path="/data/docs",
                kind=EntryKind.DIRECTORY,
                outcome=Outcome.CREATED,
                owner="alice",
                group="staff",
                mode=0o750,
                operations=[op],
            ),
            AppliedNode(
                path="/data/shared",
                kind=EntryKind.SYMLINK,
                link_target="/other",
                link_tree=AppliedNode(
                    path="/other",
                    kind=EntryKind.DIRECTORY,
                    children=[AppliedNode(path="/other/x", kind=EntryKind.FILE)],
                ),
            ),
        ],
    )
    return TraversalReport(mode=mode, stem="main", target="/data", root=root, operations=[op])


def _render(renderable: object) -> str:
    console = Console(theme=get_theme(), width=120, record=True)
    console.print(renderable)
    return console.export_text()


class TestCreateReportTable:
    """Tests for create_report_table function."""

    def test_title_depends_on_mode(self) -> None:
        """Simulated and applied reports have different titles."""
        assert create_report_table(_report()).title == "Planned Changes (Simulated)"
        assert create_report_table(_report(Mode.APPLY)).title == "Applied Changes"

    def test_one_row_per_node(self) -> None:
        """Every visited path, including linked trees, gets a row."""
        table = create_report_table(_report())

        assert table.row_count == 5

    def test_row_content(self) -> None:
        """Rows show ownership, symbolic mode and link targets."""
        text = _render(create_report_table(_report()))

        assert "alice:staff" in text
        assert "rwxr-x---" in text
        assert "-> /other" in text


class TestCreateReportTree:
    """Tests for create_report_tree function."""

    def test_tree_structure(self) -> None:
        """Children and linked trees appear as branches."""
        text = _render(create_report_tree(_report()))

        assert "docs/" in text
        assert "via /other" in text
        assert "x" in text

    def test_empty_report(self) -> None:
        """A report without results says nothing was visited."""
        report = TraversalReport(mode=Mode.SIMULATE, stem="main", target="/data")

        assert "nothing visited" in _render(create_report_tree(report))


class TestPrintReportSummary:
    """Tests for print_report_summary function."""

    def test_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        """The summary counts outcomes and operations."""
        print_report_summary(_report())

        out = capsys.readouterr().out
        assert "1 created" in out
        assert "4 unchanged" in out
        assert "1 operation would be issued." in out
