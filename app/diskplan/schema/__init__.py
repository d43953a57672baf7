"""Schema language: expressions, the abstract schema tree, parser and cache."""

from diskplan.schema.cache import SchemaCache
from diskplan.schema.expression import Expression, Special, Token, TokenKind, parse_expression
from diskplan.schema.models import (
    Attributes,
    Binding,
    DirectorySchema,
    FileSchema,
    NodeKind,
    SchemaNode,
)
from diskplan.schema.parser import ParseError, parse_mode, parse_schema, parse_schema_file

__all__ = [
    "Attributes",
    "Binding",
    "DirectorySchema",
    "Expression",
    "FileSchema",
    "NodeKind",
    "ParseError",
    "SchemaCache",
    "SchemaNode",
    "Special",
    "Token",
    "TokenKind",
    "parse_expression",
    "parse_mode",
    "parse_schema",
    "parse_schema_file",
]
