"""Abstract base class for filesystem capabilities.

The traversal engine reads and changes filesystem state only through
this interface. Concrete backends implement a handful of primitives on
paths whose parent directory is already free of symlinks; the base class
resolves links, validates preconditions and raises the same ``OSError``
subclasses a real disk would.
"""

import errno
import posixpath
from abc import ABC, abstractmethod

from diskplan.filesystem.models import EntryKind, EntryStat

# Matches the Linux limit on symlink hops during path resolution
MAX_SYMLINK_HOPS = 40


class FilesystemError(OSError):
    """Raised for filesystem failures detected outside the OS itself."""


def split_path(path: str) -> list[str]:
    """Split an absolute path into its components."""
    return [part for part in path.split("/") if part]


class Filesystem(ABC):
    """Abstract base class for filesystem capabilities.

    Subclasses implement the underscore-prefixed primitives. Every path
    handed to a primitive is absolute and normalized, and every directory
    above it has already been resolved through any symlinks.
    """

    @property
    @abstractmethod
    def default_owner(self) -> str:
        """Owner given to newly created entries."""

    @property
    @abstractmethod
    def default_group(self) -> str:
        """Group given to newly created entries."""

    @abstractmethod
    def _lookup(self, path: str) -> EntryStat | None:
        """Return metadata of an entry without following it, or None."""

    @abstractmethod
    def _children(self, path: str) -> list[tuple[str, EntryKind]]:
        """Return the entries of an existing directory."""

    @abstractmethod
    def _make_directory(self, path: str) -> None: ...

    @abstractmethod
    def _write_file(self, path: str, content: bytes) -> None: ...

    @abstractmethod
    def _make_symlink(self, path: str, target: str) -> None: ...

    @abstractmethod
    def _change_owner(self, path: str, owner: str) -> None: ...

    @abstractmethod
    def _change_group(self, path: str, group: str) -> None: ...

    @abstractmethod
    def _change_mode(self, path: str, mode: int) -> None: ...

    @abstractmethod
    def _read_file(self, path: str) -> bytes: ...

    # === Path resolution ===

    def canonicalize(self, path: str) -> str:
        """Resolve every symlink in a path.

        Components that do not exist are kept as they are, so the result
        is defined for paths that have not been created yet.

        Args:
            path: Absolute path.

        Returns:
            Absolute path without symlinks.

        Raises:
            FilesystemError: If resolution exceeds the symlink hop limit.
        """
        resolved = "/"
        pending = split_path(path)
        hops = 0
        while pending:
            part = pending.pop(0)
            if part == ".":
                continue
            if part == "..":
                resolved = posixpath.dirname(resolved)
                continue
            candidate = posixpath.join(resolved, part)
            entry = self._lookup(candidate)
            if entry is None or entry.kind != EntryKind.SYMLINK:
                resolved = candidate
                continue
            hops += 1
            if hops > MAX_SYMLINK_HOPS:
                raise FilesystemError(errno.ELOOP, "Too many levels of symbolic links", path)
            target = entry.link_target or ""
            if target.startswith("/"):
                resolved = "/"
            pending = split_path(target) + pending
        return resolved

    def _resolve_parent(self, path: str) -> str:
        path = posixpath.normpath(path)
        if path == "/":
            return path
        return posixpath.join(self.canonicalize(posixpath.dirname(path)), posixpath.basename(path))

    def _require_parent_directory(self, path: str) -> None:
        parent = posixpath.dirname(path)
        entry = self._lookup(parent)
        if entry is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", parent)
        if entry.kind != EntryKind.DIRECTORY:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", parent)

    def _prepare_create(self, path: str) -> str:
        resolved = self._resolve_parent(path)
        self._require_parent_directory(resolved)
        if self._lookup(resolved) is not None:
            raise FileExistsError(errno.EEXIST, "File exists", path)
        return resolved

    def _existing(self, path: str) -> str:
        resolved = self.canonicalize(path)
        if self._lookup(resolved) is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return resolved

    # === Queries ===

    def stat(self, path: str, follow_symlinks: bool = True) -> EntryStat | None:
        """Return metadata of an entry, or None if it does not exist.

        Args:
            path: Absolute path.
            follow_symlinks: Describe the entry a symlink points to rather
                than the link itself.

        Returns:
            Entry metadata, or None for a missing entry (or a dangling
            link when following symlinks).
        """
        if follow_symlinks:
            return self._lookup(self.canonicalize(path))
        return self._lookup(self._resolve_parent(path))

    def list_directory(self, path: str) -> list[tuple[str, EntryKind]]:
        """List the entries of a directory, sorted by name.

        Raises:
            FileNotFoundError: If the directory does not exist.
            NotADirectoryError: If the path is not a directory.
        """
        resolved = self._existing(path)
        entry = self._lookup(resolved)
        if entry is not None and entry.kind != EntryKind.DIRECTORY:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        return sorted(self._children(resolved))

    def exists(self, path: str) -> bool:
        """True if an entry exists at the path (dangling links included)."""
        return self.stat(path, follow_symlinks=False) is not None

    def is_directory(self, path: str) -> bool:
        """True if the path resolves to a directory."""
        entry = self.stat(path)
        return entry is not None and entry.kind == EntryKind.DIRECTORY

    def is_file(self, path: str) -> bool:
        """True if the path resolves to a regular file."""
        entry = self.stat(path)
        return entry is not None and entry.kind == EntryKind.FILE

    def is_symlink(self, path: str) -> bool:
        """True if the entry at the path is a symlink."""
        entry = self.stat(path, follow_symlinks=False)
        return entry is not None and entry.kind == EntryKind.SYMLINK

    def read_link(self, path: str) -> str:
        """Return the target of a symlink.

        Raises:
            FileNotFoundError: If nothing exists at the path.
            FilesystemError: If the entry is not a symlink.
        """
        entry = self.stat(path, follow_symlinks=False)
        if entry is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if entry.link_target is None:
            raise FilesystemError(errno.EINVAL, "Not a symbolic link", path)
        return entry.link_target

    def read_file(self, path: str) -> bytes:
        """Return the content of a regular file.

        Raises:
            FileNotFoundError: If the file does not exist.
            IsADirectoryError: If the path is a directory.
        """
        resolved = self._existing(path)
        entry = self._lookup(resolved)
        if entry is not None and entry.kind == EntryKind.DIRECTORY:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        return self._read_file(resolved)

    # === Mutations ===

    def create_directory(self, path: str) -> None:
        """Create a directory whose parent already exists."""
        self._make_directory(self._prepare_create(path))

    def create_file(self, path: str, content: bytes) -> None:
        """Create a regular file whose parent already exists."""
        self._write_file(self._prepare_create(path), content)

    def create_symlink(self, path: str, target: str) -> None:
        """Create a symlink to ``target`` whose parent already exists."""
        self._make_symlink(self._prepare_create(path), target)

    def set_owner(self, path: str, owner: str) -> None:
        """Change the owning user of an entry (following symlinks)."""
        self._change_owner(self._existing(path), owner)

    def set_group(self, path: str, group: str) -> None:
        """Change the owning group of an entry (following symlinks)."""
        self._change_group(self._existing(path), group)

    def set_permissions(self, path: str, mode: int) -> None:
        """Change the permission bits of an entry (following symlinks)."""
        self._change_mode(self._existing(path), mode)
