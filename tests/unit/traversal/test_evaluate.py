"""Unit tests for the binding environment and expression evaluation."""

import pytest
from diskplan.schema.expression import Special, parse_expression
from diskplan.schema.parser import parse_schema
from diskplan.traversal.errors import UndefinedVariable
from diskplan.traversal.evaluate import PLACEHOLDER, PathContext, evaluate
from diskplan.traversal.stack import StackFrame, base_stack


class TestStackFrame:
    """Tests for StackFrame scoping."""

    def test_bindings_visible_inwards(self) -> None:
        """Inner frames see outer bindings."""
        outer = base_stack({"user": "alice"})
        inner = outer.bind("team", "ops")

        assert evaluate(parse_expression("$user/$team"), inner, None) == "alice/ops"

    def test_siblings_isolated(self) -> None:
        """Frames pushed from the same parent do not see each other."""
        parent = base_stack()
        first = parent.push(lets={"x": parse_expression("1")})
        second = parent.push()

        assert first.is_bound("x")
        assert not second.is_bound("x")

    def test_ownership_inherited_by_push(self) -> None:
        """Pushed frames start with the parent's owner and group."""
        frame = base_stack().with_ownership("alice", "staff").push()

        assert (frame.owner, frame.group) == ("alice", "staff")

    def test_find_definition(self) -> None:
        """Definitions are looked up outwards."""
        definition = parse_schema("a/\n")
        outer = StackFrame(defs={"home": definition})

        assert outer.push().push().find_definition("home") is definition
        assert outer.find_definition("other") is None

    def test_frames_iterate_outwards(self) -> None:
        """frames yields the innermost frame first."""
        outer = base_stack()
        inner = outer.push()

        assert list(inner.frames()) == [inner, outer]


class TestEvaluate:
    """Tests for evaluate function."""

    def test_undefined_variable(self) -> None:
        """Unbound variables raise UndefinedVariable."""
        with pytest.raises(UndefinedVariable) as excinfo:
            evaluate(parse_expression("$missing"), base_stack(), None)

        assert excinfo.value.name == "missing"

    def test_let_evaluated_lazily(self) -> None:
        """Lets see bindings made below their definition."""
        outer = base_stack().push(lets={"home": parse_expression("/home/$user")})
        inner = outer.bind("user", "bob")

        assert evaluate(parse_expression("$home"), inner, None) == "/home/bob"

    def test_self_reference_uses_outer_value(self) -> None:
        """A let referring to its own name sees the next outer binding."""
        outer = base_stack({"path": "/srv"})
        inner = outer.push(lets={"path": parse_expression("$path/data")})

        assert evaluate(parse_expression("$path"), inner, None) == "/srv/data"

    def test_unresolvable_self_reference(self) -> None:
        """A let referring only to itself is undefined."""
        frame = base_stack().push(lets={"x": parse_expression("$x")})

        with pytest.raises(UndefinedVariable):
            evaluate(parse_expression("$x"), frame, None)

    def test_specials_without_context(self) -> None:
        """Specials become placeholders when no path is known."""
        assert evaluate(parse_expression("$NAME"), base_stack(), None) == PLACEHOLDER


class TestPathContext:
    """Tests for PathContext specials."""

    def test_specials(self) -> None:
        """Each special describes the current path."""
        context = PathContext("/srv", "/srv/users/alice")

        assert context.special(Special.PATH) == "users/alice"
        assert context.special(Special.FULL_PATH) == "/srv/users/alice"
        assert context.special(Special.NAME) == "alice"
        assert context.special(Special.PARENT_PATH) == "users"
        assert context.special(Special.PARENT_FULL_PATH) == "/srv/users"
        assert context.special(Special.PARENT_NAME) == "users"
        assert context.special(Special.ROOT_PATH) == "/srv"

    def test_root_is_own_parent(self) -> None:
        """The root has an empty relative path and is its own parent."""
        context = PathContext("/srv", "/srv")

        assert context.relative == ""
        assert context.parent == context
        assert context.join("a").path == "/srv/a"
