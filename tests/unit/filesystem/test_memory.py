"""Unit tests for the in-memory filesystem.

These also cover the path resolution and precondition checks shared by
every backend through the Filesystem base class.
"""

import pytest
from diskplan.filesystem.base import FilesystemError, split_path
from diskplan.filesystem.memory import MemoryFilesystem
from diskplan.filesystem.models import DEFAULT_DIRECTORY_MODE, DEFAULT_FILE_MODE, EntryKind


class TestSplitPath:
    """Tests for split_path helper."""

    def test_split(self) -> None:
        """Empty components are dropped."""
        assert split_path("/a//b/c/") == ["a", "b", "c"]
        assert split_path("/") == []


class TestCreate:
    """Tests for creating entries."""

    def test_root_exists(self, memory_fs: MemoryFilesystem) -> None:
        """A new filesystem has a root directory."""
        assert memory_fs.is_directory("/")
        assert memory_fs.list_directory("/") == []

    def test_create_directory(self, memory_fs: MemoryFilesystem) -> None:
        """Directories get default ownership and mode."""
        memory_fs.create_directory("/data")

        entry = memory_fs.stat("/data")
        assert entry is not None
        assert entry.kind == EntryKind.DIRECTORY
        assert (entry.owner, entry.group) == ("root", "root")
        assert entry.mode == DEFAULT_DIRECTORY_MODE

    def test_create_file(self, memory_fs: MemoryFilesystem) -> None:
        """Files keep their content."""
        memory_fs.create_file("/notes", b"hello")

        assert memory_fs.is_file("/notes")
        assert memory_fs.read_file("/notes") == b"hello"
        entry = memory_fs.stat("/notes")
        assert entry is not None
        assert entry.mode == DEFAULT_FILE_MODE

    def test_create_requires_parent(self, memory_fs: MemoryFilesystem) -> None:
        """Creating below a missing directory fails."""
        with pytest.raises(FileNotFoundError):
            memory_fs.create_directory("/a/b")

    def test_create_below_file(self, memory_fs: MemoryFilesystem) -> None:
        """Creating below a file fails."""
        memory_fs.create_file("/f", b"")

        with pytest.raises(NotADirectoryError):
            memory_fs.create_directory("/f/x")

    def test_create_existing(self, memory_fs: MemoryFilesystem) -> None:
        """Creating over an existing entry fails."""
        memory_fs.create_directory("/a")

        with pytest.raises(FileExistsError):
            memory_fs.create_file("/a", b"")

    def test_make_directories(self, memory_fs: MemoryFilesystem) -> None:
        """make_directories creates missing parents."""
        memory_fs.make_directories("/a/b/c")
        memory_fs.make_directories("/a/b/c")

        assert memory_fs.is_directory("/a/b/c")
        assert memory_fs.list_directory("/a") == [("b", EntryKind.DIRECTORY)]

    def test_list_directory_sorted(self, memory_fs: MemoryFilesystem) -> None:
        """Listings are sorted by name and report kinds."""
        memory_fs.create_file("/b", b"")
        memory_fs.create_directory("/a")
        memory_fs.create_symlink("/c", "/a")

        assert memory_fs.list_directory("/") == [
            ("a", EntryKind.DIRECTORY),
            ("b", EntryKind.FILE),
            ("c", EntryKind.SYMLINK),
        ]

    def test_list_file_fails(self, memory_fs: MemoryFilesystem) -> None:
        """Listing a file fails."""
        memory_fs.create_file("/f", b"")

        with pytest.raises(NotADirectoryError):
            memory_fs.list_directory("/f")


class TestSymlinks:
    """Tests for symlink resolution."""

    def test_follow_absolute_link(self, memory_fs: MemoryFilesystem) -> None:
        """stat follows links unless asked not to."""
        memory_fs.make_directories("/real/dir")
        memory_fs.create_symlink("/link", "/real")

        assert memory_fs.is_symlink("/link")
        assert memory_fs.is_directory("/link")
        assert memory_fs.is_directory("/link/dir")
        link = memory_fs.stat("/link", follow_symlinks=False)
        assert link is not None
        assert link.link_target == "/real"
        assert memory_fs.read_link("/link") == "/real"

    def test_relative_link(self, memory_fs: MemoryFilesystem) -> None:
        """Relative targets resolve against the link's directory."""
        memory_fs.make_directories("/a/b")
        memory_fs.create_file("/a/b/f", b"x")
        memory_fs.create_symlink("/a/f", "b/f")
        memory_fs.create_symlink("/a/b/up", "../f")

        assert memory_fs.canonicalize("/a/f") == "/a/b/f"
        assert memory_fs.read_file("/a/b/up") == b"x"

    def test_create_through_link(self, memory_fs: MemoryFilesystem) -> None:
        """Entries created below a link land in its target."""
        memory_fs.create_directory("/real")
        memory_fs.create_symlink("/link", "/real")

        memory_fs.create_directory("/link/sub")

        assert memory_fs.list_directory("/real") == [("sub", EntryKind.DIRECTORY)]

    def test_dangling_link(self, memory_fs: MemoryFilesystem) -> None:
        """A dangling link exists but does not resolve."""
        memory_fs.create_symlink("/dangling", "/nowhere")

        assert memory_fs.exists("/dangling")
        assert memory_fs.stat("/dangling") is None
        assert memory_fs.canonicalize("/dangling/x") == "/nowhere/x"

    def test_link_loop(self, memory_fs: MemoryFilesystem) -> None:
        """Resolution gives up on loops."""
        memory_fs.create_symlink("/a", "/b")
        memory_fs.create_symlink("/b", "/a")

        with pytest.raises(FilesystemError, match="Too many levels"):
            memory_fs.canonicalize("/a")

    def test_read_link_on_directory(self, memory_fs: MemoryFilesystem) -> None:
        """read_link refuses non-links."""
        memory_fs.create_directory("/d")

        with pytest.raises(FilesystemError):
            memory_fs.read_link("/d")


class TestMetadata:
    """Tests for ownership and permission changes."""

    def test_set_owner_group_mode(self, memory_fs: MemoryFilesystem) -> None:
        """Changes are visible through stat."""
        memory_fs.create_directory("/d")

        memory_fs.set_owner("/d", "alice")
        memory_fs.set_group("/d", "staff")
        memory_fs.set_permissions("/d", 0o700)

        entry = memory_fs.stat("/d")
        assert entry is not None
        assert (entry.owner, entry.group, entry.mode) == ("alice", "staff", 0o700)

    def test_set_on_missing_fails(self, memory_fs: MemoryFilesystem) -> None:
        """Changing a missing entry fails."""
        with pytest.raises(FileNotFoundError):
            memory_fs.set_permissions("/missing", 0o700)

    def test_read_directory_fails(self, memory_fs: MemoryFilesystem) -> None:
        """Reading a directory fails."""
        with pytest.raises(IsADirectoryError):
            memory_fs.read_file("/")

    def test_custom_default_owner(self) -> None:
        """New entries are owned by the filesystem's default owner."""
        fs = MemoryFilesystem(owner="alice", group="users")
        fs.create_file("/f", b"")

        entry = fs.stat("/f")
        assert entry is not None
        assert (entry.owner, entry.group) == ("alice", "users")
        assert (fs.default_owner, fs.default_group) == ("alice", "users")
