"""In-memory filesystem.

A self-contained model of a POSIX directory tree used for previews and
tests. Entries hold their own owner, group and mode; nothing touches the
real disk.
"""

import errno
import posixpath
from dataclasses import dataclass, field

from diskplan.filesystem.base import Filesystem
from diskplan.filesystem.models import (
    DEFAULT_DIRECTORY_MODE,
    DEFAULT_FILE_MODE,
    EntryKind,
    EntryStat,
)


@dataclass
class _MemoryEntry:
    kind: EntryKind
    owner: str
    group: str
    mode: int
    content: bytes = b""
    target: str | None = None
    children: set[str] = field(default_factory=set)

    def stat(self) -> EntryStat:
        return EntryStat(
            kind=self.kind,
            owner=self.owner,
            group=self.group,
            mode=self.mode,
            link_target=self.target,
        )


class MemoryFilesystem(Filesystem):
    """Filesystem held entirely in memory.

    Args:
        owner: Owner of the root directory and of every new entry.
        group: Group of the root directory and of every new entry.
    """

    def __init__(self, owner: str = "root", group: str = "root") -> None:
        self._owner = owner
        self._group = group
        self._entries: dict[str, _MemoryEntry] = {
            "/": _MemoryEntry(EntryKind.DIRECTORY, owner, group, DEFAULT_DIRECTORY_MODE)
        }

    @property
    def default_owner(self) -> str:
        return self._owner

    @property
    def default_group(self) -> str:
        return self._group

    def _lookup(self, path: str) -> EntryStat | None:
        entry = self._entries.get(path)
        return entry.stat() if entry is not None else None

    def _children(self, path: str) -> list[tuple[str, EntryKind]]:
        entry = self._entries[path]
        return [(name, self._entries[posixpath.join(path, name)].kind) for name in entry.children]

    def _insert(self, path: str, entry: _MemoryEntry) -> None:
        self._entries[path] = entry
        self._entries[posixpath.dirname(path)].children.add(posixpath.basename(path))

    def _make_directory(self, path: str) -> None:
        self._insert(
            path,
            _MemoryEntry(EntryKind.DIRECTORY, self._owner, self._group, DEFAULT_DIRECTORY_MODE),
        )

    def _write_file(self, path: str, content: bytes) -> None:
        self._insert(
            path,
            _MemoryEntry(
                EntryKind.FILE, self._owner, self._group, DEFAULT_FILE_MODE, content=content
            ),
        )

    def _make_symlink(self, path: str, target: str) -> None:
        self._insert(
            path,
            _MemoryEntry(EntryKind.SYMLINK, self._owner, self._group, 0o777, target=target),
        )

    def _change_owner(self, path: str, owner: str) -> None:
        self._entries[path].owner = owner

    def _change_group(self, path: str, group: str) -> None:
        self._entries[path].group = group

    def _change_mode(self, path: str, mode: int) -> None:
        self._entries[path].mode = mode

    def _read_file(self, path: str) -> bytes:
        return self._entries[path].content

    def make_directories(self, path: str) -> None:
        """Create a directory and any missing parents, like ``mkdir -p``.

        Raises:
            FileExistsError: If a non-directory is in the way.
        """
        current = "/"
        for part in path.split("/"):
            if not part:
                continue
            current = posixpath.join(current, part)
            entry = self.stat(current)
            if entry is None:
                self.create_directory(current)
            elif entry.kind != EntryKind.DIRECTORY:
                raise FileExistsError(errno.EEXIST, "File exists", current)
