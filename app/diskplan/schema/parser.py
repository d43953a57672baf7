"""Schema text parser.

Turns the line-oriented, indentation-significant schema language into an
abstract schema tree of :class:`SchemaNode` objects::

    # comment
    :owner admin
    sub-directory/
        :mode 750
        blank_file
            :content
        $variable/
            :match [A-Z][a-z]*
            inner-directory/

Entries are indented four spaces per level. Directives start with ``:``
and are indented one level deeper than the entry they belong to; at the
top level they belong to the schema root.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from diskplan.core.errors import DiskplanError
from diskplan.schema.expression import IDENTIFIER, Expression, parse_expression
from diskplan.schema.models import (
    Attributes,
    Binding,
    DirectorySchema,
    FileSchema,
    SchemaNode,
)

logger = logging.getLogger(__name__)

INDENT_WIDTH = 4

_ENTRY = re.compile(
    r"^(?P<variable>\$)?(?P<name>[A-Za-z0-9_\-.@^+%=]+)(?P<directory>/)?"
    r"(?:\s*->\s*(?P<target>\S.*))?$"
)
_DIRECTIVE = re.compile(r"^:(?P<name>[a-z]+(?:\.[a-z]+)?)(?:\s+(?P<value>.*))?$")
_LET = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$")
_SYMBOLIC_MODE = re.compile(r"^(?:[r-][w-][x-]){3}$")

# Directive aliases accepted for compatibility with older schemas
_ALIASES = {
    "perms": "mode",
    "is.link": "target",
    "is.reuse": "use",
}


class ParseError(DiskplanError):
    """Raised when schema text violates the grammar.

    Attributes:
        message: Description of the problem.
        line_number: 1-based line number of the offending line.
        column: 1-based column where the problem starts.
        rule: Name of the violated grammar rule.
        text: The offending source line.
        source: Path of the schema file, if known.
    """

    def __init__(
        self,
        message: str,
        line_number: int = 0,
        column: int = 1,
        rule: str = "syntax",
        text: str = "",
        source: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.column = column
        self.rule = rule
        self.text = text
        self.source = source

    def __str__(self) -> str:
        location = self.source or "<schema>"
        return f"{location}:{self.line_number}:{self.column}: {self.message} ({self.rule})"

    def render(self) -> str:
        """Render the error with the offending line and a caret marker."""
        gutter = str(self.line_number)
        pad = " " * len(gutter)
        return "\n".join(
            [
                f"error: {self.message}",
                f"{pad}--> {self.source or '<schema>'}:{self.line_number}:{self.column}",
                f"{pad} |",
                f"{gutter} | {self.text}",
                f"{pad} | {' ' * (self.column - 1)}^ {self.rule}",
            ]
        )


@dataclass
class _Line:
    number: int
    text: str
    level: int
    content: str
    indent: int

    @property
    def column(self) -> int:
        return self.indent + 1

    def column_of(self, fragment: str) -> int:
        index = self.text.find(fragment, self.indent)
        return index + 1 if index >= 0 else self.column


@dataclass
class _Builder:
    """Mutable accumulator for one node while its lines are being read."""

    role: str
    level: int
    is_directory: bool
    line: _Line | None = None
    symlink: Expression | None = None
    match: Expression | None = None
    avoid: Expression | None = None
    owner: Expression | None = None
    group: Expression | None = None
    mode: int | None = None
    source: Expression | None = None
    content: Expression | None = None
    is_file: bool = False
    lets: dict[str, Expression] = field(default_factory=dict)
    defs: dict[str, "_Builder"] = field(default_factory=dict)
    entries: list[tuple[Binding, "_Builder"]] = field(default_factory=list)
    uses: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)


class _Parser:
    def __init__(self, text: str, source: str | None) -> None:
        self._text = text
        self._source = source

    def error(
        self, message: str, line: _Line | None, rule: str, column: int | None = None
    ) -> ParseError:
        if line is None:
            return ParseError(message, rule=rule, source=self._source)
        return ParseError(
            message,
            line_number=line.number,
            column=column if column is not None else line.column,
            rule=rule,
            text=line.text,
            source=self._source,
        )

    def lines(self) -> list[_Line]:
        result: list[_Line] = []
        base: int | None = None
        for number, raw in enumerate(self._text.splitlines(), start=1):
            text = raw.rstrip()
            content = text.lstrip()
            if not content or content.startswith("#"):
                continue
            leading = text[: len(text) - len(content)]
            if "\t" in leading:
                line = _Line(number, text, 0, content, 0)
                raise self.error("Tabs cannot be used for indentation", line, "indentation")
            indent = len(leading)
            if base is None:
                base = indent
            line = _Line(number, text, 0, content, indent)
            relative = indent - base
            if relative < 0:
                raise self.error("Line is indented less than the first line", line, "indentation")
            if relative % INDENT_WIDTH:
                raise self.error(
                    f"Indentation must be a multiple of {INDENT_WIDTH} spaces", line, "indentation"
                )
            line.level = relative // INDENT_WIDTH
            result.append(line)
        return result

    def parse(self) -> SchemaNode:
        root = _Builder(role="root", level=-1, is_directory=True)
        stack: list[_Builder] = [root]
        for line in self.lines():
            while stack[-1].level >= line.level:
                stack.pop()
            owner = stack[-1]
            if owner.level != line.level - 1:
                raise self.error(
                    "Unexpected indentation (a level was skipped or the owner is not an entry)",
                    line,
                    "indentation",
                )
            if line.content.startswith(":"):
                pushed = self.directive(owner, line)
            else:
                pushed = self.entry(owner, line)
            if pushed is not None:
                stack.append(pushed)
        return self.build(root)

    # === Entries ===

    def entry(self, owner: _Builder, line: _Line) -> _Builder:
        found = _ENTRY.match(line.content)
        if found is None:
            raise self.error(f"Invalid entry '{line.content}'", line, "entry")
        name = found.group("name")
        is_variable = found.group("variable") is not None
        if is_variable and not IDENTIFIER.fullmatch(name):
            raise self.error(f"Invalid variable name '{name}'", line, "entry")
        if name in (".", ".."):
            raise self.error(f"'{name}' cannot be used as an entry name", line, "entry")
        if not owner.is_directory:
            raise self.error(
                "Files cannot have child items (add a '/' to make it a directory)",
                line,
                "placement",
            )
        binding = Binding(name, is_variable)
        if not is_variable and any(b == binding for b, _ in owner.entries):
            raise self.error(f"Entry '{name}' occurs twice", line, "uniqueness")

        child = _Builder(
            role="entry",
            level=line.level,
            is_directory=found.group("directory") is not None,
            line=line,
        )
        if found.group("target"):
            child.symlink = parse_expression(found.group("target"))
        owner.entries.append((binding, child))
        return child

    # === Directives ===

    def directive(self, owner: _Builder, line: _Line) -> _Builder | None:
        found = _DIRECTIVE.match(line.content)
        if found is None:
            raise self.error(f"Malformed directive '{line.content}'", line, "directive")
        name = _ALIASES.get(found.group("name"), found.group("name"))
        value = found.group("value")
        column = line.column_of(value) if value else line.column

        handler = getattr(self, f"directive_{name.replace('.', '_')}", None)
        if handler is None:
            raise self.error(f"Unknown directive ':{found.group('name')}'", line, "directive")
        if name not in ("content", "is.file") and not value:
            raise self.error(f":{name} requires a value", line, "directive")
        return handler(owner, line, value or "", column)

    def _unique(self, owner: _Builder, attr: str, name: str, line: _Line) -> None:
        if getattr(owner, attr) is not None:
            raise self.error(f":{name} occurs twice", line, "uniqueness")

    def directive_let(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        if not owner.is_directory:
            raise self.error(
                "Cannot use :let to set variables inside files (add a '/' to make it a directory)",
                line,
                "placement",
            )
        found = _LET.match(value)
        if found is None:
            raise self.error("Expected ':let <name> = <expression>'", line, "directive", column)
        name = found.group("name")
        if name in owner.lets:
            raise self.error(f":let {name} occurs twice", line, "uniqueness", column)
        owner.lets[name] = parse_expression(found.group("value"))

    def _pattern(
        self, owner: _Builder, line: _Line, value: str, column: int, name: str
    ) -> Expression:
        if owner.role == "root":
            raise self.error(f":{name} cannot be used at the top level", line, "placement")
        if owner.role == "def":
            raise self.error(f":{name} cannot be used in definition", line, "placement")
        self._unique(owner, name, name, line)
        expression = parse_expression(value)
        if expression.is_literal:
            try:
                re.compile(expression.literal())
            except re.error as e:
                raise self.error(
                    f"Invalid regular expression: {e}", line, "pattern", column
                ) from e
        return expression

    def directive_match(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        owner.match = self._pattern(owner, line, value, column, "match")

    def directive_avoid(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        owner.avoid = self._pattern(owner, line, value, column, "avoid")

    def directive_mode(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        self._unique(owner, "mode", "mode", line)
        try:
            owner.mode = parse_mode(value)
        except ValueError as e:
            raise self.error(str(e), line, "mode", column) from e

    def directive_owner(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        self._unique(owner, "owner", "owner", line)
        owner.owner = parse_expression(value)

    def directive_group(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        self._unique(owner, "group", "group", line)
        owner.group = parse_expression(value)

    def _file_only(self, owner: _Builder, line: _Line, name: str) -> None:
        if owner.is_directory:
            raise self.error(
                f":{name} can only be used for files, not directories", line, "placement"
            )

    def directive_source(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        self._file_only(owner, line, "source")
        self._unique(owner, "source", "source", line)
        if owner.uses:
            raise self.error(":source cannot be used in conjunction with :use", line, "placement")
        if owner.content is not None:
            raise self.error(
                ":source cannot be used in conjunction with :content", line, "placement"
            )
        owner.source = parse_expression(value)

    def directive_content(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        self._file_only(owner, line, "content")
        self._unique(owner, "content", "content", line)
        if owner.source is not None:
            raise self.error(
                ":content cannot be used in conjunction with :source", line, "placement"
            )
        owner.content = parse_expression(value)

    def directive_is_file(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        if value:
            raise self.error(":is.file takes no value", line, "directive", column)
        self._file_only(owner, line, "is.file")
        if owner.is_file:
            raise self.error(":is.file occurs twice", line, "uniqueness")
        owner.is_file = True

    def directive_target(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        if owner.role == "root":
            raise self.error(":target cannot be used at the top level", line, "placement")
        self._unique(owner, "symlink", "target", line)
        owner.symlink = parse_expression(value)

    def directive_use(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        if not IDENTIFIER.fullmatch(value):
            raise self.error(f"Invalid definition name '{value}'", line, "directive", column)
        if owner.source is not None:
            raise self.error(":use cannot be used in conjunction with :source", line, "placement")
        if value in owner.uses:
            raise self.error(f":use {value} occurs twice", line, "uniqueness", column)
        owner.uses.append(value)

    def directive_include(self, owner: _Builder, line: _Line, value: str, column: int) -> None:
        if not owner.is_directory:
            raise self.error(":include can only be used for directories", line, "placement")
        if not parse_expression(value).is_literal:
            raise self.error(":include requires a literal path", line, "directive", column)
        owner.includes.append(value)

    def directive_def(self, owner: _Builder, line: _Line, value: str, column: int) -> _Builder:
        if not owner.is_directory:
            raise self.error(
                "Cannot :define sub-trees inside files (add a '/' to make it a directory)",
                line,
                "placement",
            )
        found = _ENTRY.match(value)
        if found is None or found["variable"] or not IDENTIFIER.fullmatch(found["name"]):
            raise self.error("Expected ':def <name>[/] [-> <target>]'", line, "directive", column)
        name = found.group("name")
        if name in owner.defs:
            raise self.error(f":def {name} occurs twice", line, "uniqueness", column)
        definition = _Builder(
            role="def",
            level=line.level,
            is_directory=found.group("directory") is not None,
            line=line,
        )
        if found.group("target"):
            definition.symlink = parse_expression(found.group("target"))
        owner.defs[name] = definition
        return definition

    # === Assembly ===

    def build(self, builder: _Builder) -> SchemaNode:
        schema: DirectorySchema | FileSchema
        if builder.is_directory:
            schema = DirectorySchema(
                lets=dict(builder.lets),
                defs={name: self.build(d) for name, d in builder.defs.items()},
                entries=tuple((b, self.build(child)) for b, child in builder.entries),
            )
        else:
            has_origin = (
                builder.source is not None or builder.content is not None or bool(builder.uses)
            )
            if builder.role == "entry" and builder.symlink is None and not has_origin:
                raise self.error(
                    "File must have a :source or :content (or add a '/' to make it a directory)",
                    builder.line,
                    "content",
                )
            schema = FileSchema(source=builder.source, content=builder.content)

        line = builder.line
        return SchemaNode(
            schema=schema,
            line=line.content if line else "",
            line_number=line.number if line else 0,
            match=builder.match,
            avoid=builder.avoid,
            symlink=builder.symlink,
            uses=tuple(builder.uses),
            includes=tuple(builder.includes),
            attributes=Attributes(owner=builder.owner, group=builder.group, mode=builder.mode),
        )


def parse_mode(value: str) -> int:
    """Parse permission bits from octal or symbolic notation.

    Accepts ``755``, ``0755``, ``0o755`` and ``rwxr-xr-x``.

    Args:
        value: Mode text.

    Returns:
        Permission bits as an integer.

    Raises:
        ValueError: If the value is not a valid mode.
    """
    text = value.strip()
    if _SYMBOLIC_MODE.match(text):
        mode = 0
        for index, char in enumerate(text):
            if char != "-":
                mode |= 1 << (8 - index)
        return mode
    digits = text[2:] if text.lower().startswith("0o") else text
    if not digits or any(c not in "01234567" for c in digits):
        msg = f"Invalid mode '{value}': expected octal digits or rwx notation"
        raise ValueError(msg)
    mode = int(digits, 8)
    if mode > 0o7777:
        msg = f"Invalid mode '{value}': out of range"
        raise ValueError(msg)
    return mode


def parse_schema(text: str, source: str | None = None) -> SchemaNode:
    """Parse schema text into the root node of an abstract schema tree.

    Args:
        text: Schema source text.
        source: Name of the schema file, used in error messages.

    Returns:
        Root directory node of the schema.

    Raises:
        ParseError: If the text violates the schema grammar.
    """
    return _Parser(text, source).parse()


def parse_schema_file(path: Path) -> SchemaNode:
    """Read and parse a schema file.

    Args:
        path: Path to the schema file.

    Returns:
        Root directory node of the schema.

    Raises:
        ParseError: If the file cannot be read or violates the grammar.
    """
    logger.debug("Parsing schema %s", path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"Failed to read schema: {e}", rule="io", source=str(path)) from e
    return parse_schema(text, source=str(path))
