"""Copy-on-write overlay used for Simulate mode.

Reads fall through to a base filesystem; every change is recorded in the
overlay only. Later reads within the same run observe earlier simulated
changes, so a simulated parent directory makes its simulated children
resolvable, while the base filesystem is never modified.
"""

import posixpath
from dataclasses import dataclass, replace

from diskplan.filesystem.base import Filesystem
from diskplan.filesystem.models import (
    DEFAULT_DIRECTORY_MODE,
    DEFAULT_FILE_MODE,
    EntryKind,
    EntryStat,
)


@dataclass
class _OverlayEntry:
    stat: EntryStat
    content: bytes = b""


class SimulatedFilesystem(Filesystem):
    """Overlay that records changes without applying them to ``base``.

    Args:
        base: Filesystem providing the starting state.
    """

    def __init__(self, base: Filesystem) -> None:
        self._base = base
        self._created: dict[str, _OverlayEntry] = {}
        self._listing: dict[str, set[str]] = {}
        self._changed: dict[str, EntryStat] = {}

    @property
    def base(self) -> Filesystem:
        """The filesystem the overlay reads through to."""
        return self._base

    @property
    def default_owner(self) -> str:
        return self._base.default_owner

    @property
    def default_group(self) -> str:
        return self._base.default_group

    def _lookup(self, path: str) -> EntryStat | None:
        created = self._created.get(path)
        if created is not None:
            return created.stat
        changed = self._changed.get(path)
        if changed is not None:
            return changed
        return self._base._lookup(path)

    def _children(self, path: str) -> list[tuple[str, EntryKind]]:
        result: list[tuple[str, EntryKind]] = []
        if path not in self._created:
            result.extend(self._base._children(path))
        for name in self._listing.get(path, ()):
            result.append((name, self._created[posixpath.join(path, name)].stat.kind))
        return result

    def _insert(self, path: str, entry: _OverlayEntry) -> None:
        self._created[path] = entry
        self._listing.setdefault(posixpath.dirname(path), set()).add(posixpath.basename(path))

    def _new_stat(self, kind: EntryKind, mode: int, target: str | None = None) -> EntryStat:
        return EntryStat(
            kind=kind,
            owner=self.default_owner,
            group=self.default_group,
            mode=mode,
            link_target=target,
        )

    def _make_directory(self, path: str) -> None:
        entry = _OverlayEntry(self._new_stat(EntryKind.DIRECTORY, DEFAULT_DIRECTORY_MODE))
        self._insert(path, entry)

    def _write_file(self, path: str, content: bytes) -> None:
        entry = _OverlayEntry(self._new_stat(EntryKind.FILE, DEFAULT_FILE_MODE), content)
        self._insert(path, entry)

    def _make_symlink(self, path: str, target: str) -> None:
        self._insert(path, _OverlayEntry(self._new_stat(EntryKind.SYMLINK, 0o777, target)))

    def _update(self, path: str, **changes: object) -> None:
        created = self._created.get(path)
        if created is not None:
            created.stat = replace(created.stat, **changes)
            return
        current = self._lookup(path)
        if current is not None:
            self._changed[path] = replace(current, **changes)

    def _change_owner(self, path: str, owner: str) -> None:
        self._update(path, owner=owner)

    def _change_group(self, path: str, group: str) -> None:
        self._update(path, group=group)

    def _change_mode(self, path: str, mode: int) -> None:
        self._update(path, mode=mode)

    def _read_file(self, path: str) -> bytes:
        created = self._created.get(path)
        if created is not None:
            return created.content
        return self._base._read_file(path)
