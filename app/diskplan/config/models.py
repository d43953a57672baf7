"""Configuration file models.

This module defines the Pydantic models representing the diskplan.toml
structure that maps named stems to a root directory and a schema file.
"""

import posixpath
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StemConfig(BaseModel):
    """Configuration of a single stem.

    Attributes:
        root: Absolute directory the stem's schema is applied to.
        schema_file: Schema file describing the tree under the root,
            absolute or relative to the schema directory. Written as
            ``schema`` in the TOML file.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    root: Annotated[str, Field(description="Absolute root directory of the stem")]
    schema_file: Annotated[
        str,
        Field(alias="schema", description="Path of the schema file for this stem"),
    ]

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Require an absolute root and normalize it."""
        if not v.startswith("/"):
            msg = f"Stem root must be an absolute path, got '{v}'"
            raise ValueError(msg)
        return posixpath.normpath(v)

    @field_validator("schema_file")
    @classmethod
    def validate_schema_file(cls, v: str) -> str:
        """Reject empty schema paths."""
        if not v.strip():
            msg = "Schema path cannot be empty"
            raise ValueError(msg)
        return v


class ConfigFile(BaseModel):
    """Root model of diskplan.toml.

    Attributes:
        schema_directory: Directory relative schema paths are resolved
            against. Defaults to the directory containing the config file.
        stems: Stem configurations by unique name.
        usermap: Owner names to substitute when applying schemas.
        groupmap: Group names to substitute when applying schemas.
    """

    model_config = ConfigDict(extra="forbid")

    schema_directory: Annotated[
        str | None, Field(description="Directory to search for schemas")
    ] = None
    stems: dict[str, StemConfig] = Field(default_factory=dict, description="Stems by name")
    usermap: dict[str, str] = Field(default_factory=dict, description="User substitutions")
    groupmap: dict[str, str] = Field(default_factory=dict, description="Group substitutions")

    @field_validator("stems")
    @classmethod
    def validate_unique_roots(cls, v: dict[str, StemConfig]) -> dict[str, StemConfig]:
        """Reject two stems sharing the same root directory."""
        seen: dict[str, str] = {}
        for name, stem in v.items():
            if stem.root in seen:
                msg = f"Stems '{seen[stem.root]}' and '{name}' share the root {stem.root}"
                raise ValueError(msg)
            seen[stem.root] = name
        return v
