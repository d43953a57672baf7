"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import textwrap
from collections.abc import Callable

import pytest
from diskplan.config.stems import Config
from diskplan.filesystem.memory import MemoryFilesystem
from diskplan.schema.parser import parse_schema

ConfigFactory = Callable[..., Config]


def _schema_text(text: str) -> str:
    """Dedent an indented triple-quoted schema."""
    return textwrap.dedent(text).strip("\n") + "\n"


@pytest.fixture
def memory_fs() -> MemoryFilesystem:
    """Empty in-memory filesystem owned by root."""
    return MemoryFilesystem(owner="root", group="root")


@pytest.fixture
def make_config() -> ConfigFactory:
    """Factory building a Config from inline schema text.

    Call it with ``name=(root, schema_text)`` keyword arguments, or with a
    single positional schema text for a stem called ``main`` at ``/data``.
    """

    def factory(
        text: str | None = None,
        *,
        usermap: dict[str, str] | None = None,
        groupmap: dict[str, str] | None = None,
        **stems: tuple[str, str],
    ) -> Config:
        config = Config(usermap=usermap, groupmap=groupmap)
        if text is not None:
            stems = {"main": ("/data", text), **stems}
        for name, (root, source) in stems.items():
            schema = parse_schema(_schema_text(source), source=f"{name}.diskschema")
            config.add_precached_stem(name, root, schema)
        return config

    return factory


@pytest.fixture
def example_schema() -> str:
    """Schema with a fixed directory, an empty file and a capitalized binder."""
    return """
        sub-directory/
            blank_file
                :content
            $variable/
                :match [A-Z][a-z]*
                inner-directory/
    """
