"""Real-disk filesystem backed by the ``os`` module."""

import errno
import grp
import os
import pwd
import stat

from diskplan.filesystem.base import Filesystem, FilesystemError
from diskplan.filesystem.models import EntryKind, EntryStat


def _user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def _user_id(name: str) -> int:
    try:
        return pwd.getpwnam(name).pw_uid
    except KeyError:
        if name.isdigit():
            return int(name)
        raise FilesystemError(errno.EINVAL, f"No such user '{name}'") from None


def _group_id(name: str) -> int:
    try:
        return grp.getgrnam(name).gr_gid
    except KeyError:
        if name.isdigit():
            return int(name)
        raise FilesystemError(errno.EINVAL, f"No such group '{name}'") from None


def _kind(mode: int) -> EntryKind:
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    # Devices, sockets and pipes behave like files for provisioning
    return EntryKind.FILE


class DiskFilesystem(Filesystem):
    """Filesystem capability operating on the local disk."""

    @property
    def default_owner(self) -> str:
        return _user_name(os.geteuid())

    @property
    def default_group(self) -> str:
        return _group_name(os.getegid())

    def _lookup(self, path: str) -> EntryStat | None:
        try:
            info = os.lstat(path)
        except FileNotFoundError:
            return None
        except NotADirectoryError:
            return None
        kind = _kind(info.st_mode)
        return EntryStat(
            kind=kind,
            owner=_user_name(info.st_uid),
            group=_group_name(info.st_gid),
            mode=stat.S_IMODE(info.st_mode),
            link_target=os.readlink(path) if kind == EntryKind.SYMLINK else None,
        )

    def _children(self, path: str) -> list[tuple[str, EntryKind]]:
        result: list[tuple[str, EntryKind]] = []
        with os.scandir(path) as entries:
            for entry in entries:
                if entry.is_symlink():
                    kind = EntryKind.SYMLINK
                elif entry.is_dir(follow_symlinks=False):
                    kind = EntryKind.DIRECTORY
                else:
                    kind = EntryKind.FILE
                result.append((entry.name, kind))
        return result

    def _make_directory(self, path: str) -> None:
        os.mkdir(path)

    def _write_file(self, path: str, content: bytes) -> None:
        with open(path, "xb") as f:
            f.write(content)

    def _make_symlink(self, path: str, target: str) -> None:
        os.symlink(target, path)

    def _change_owner(self, path: str, owner: str) -> None:
        os.chown(path, _user_id(owner), -1)

    def _change_group(self, path: str, group: str) -> None:
        os.chown(path, -1, _group_id(group))

    def _change_mode(self, path: str, mode: int) -> None:
        os.chmod(path, mode)

    def _read_file(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()
