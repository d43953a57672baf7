"""Filesystem domain models.

This module defines the data structures exchanged with a filesystem
capability: entry kinds and the metadata snapshot returned by ``stat``.
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_DIRECTORY_MODE = 0o755
DEFAULT_FILE_MODE = 0o644


class EntryKind(str, Enum):
    """Type of filesystem entry.

    Attributes:
        DIRECTORY: Regular directory.
        FILE: Regular file.
        SYMLINK: Symbolic link (not followed).
    """

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


@dataclass(frozen=True, slots=True)
class EntryStat:
    """Metadata of one filesystem entry.

    Attributes:
        kind: Type of the entry.
        owner: Owning user name.
        group: Owning group name.
        mode: Permission bits (without file type bits).
        link_target: Target of a symbolic link, None for other kinds.
    """

    kind: EntryKind
    owner: str
    group: str
    mode: int
    link_target: str | None = None

    def __post_init__(self) -> None:
        """Validate entry metadata after initialization."""
        if not 0 <= self.mode <= 0o7777:
            msg = f"Mode must be between 0 and 0o7777, got {oct(self.mode)}"
            raise ValueError(msg)
        if (self.kind == EntryKind.SYMLINK) != (self.link_target is not None):
            msg = "Only symlinks carry a link target"
            raise ValueError(msg)
