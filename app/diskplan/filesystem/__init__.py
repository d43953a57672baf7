"""Filesystem capabilities.

This module provides the abstract capability consumed by the traversal
engine and its three implementations: the real disk, an in-memory model,
and a copy-on-write overlay used to simulate runs.
"""

from diskplan.filesystem.base import Filesystem, FilesystemError
from diskplan.filesystem.memory import MemoryFilesystem
from diskplan.filesystem.models import (
    DEFAULT_DIRECTORY_MODE,
    DEFAULT_FILE_MODE,
    EntryKind,
    EntryStat,
)
from diskplan.filesystem.physical import DiskFilesystem
from diskplan.filesystem.simulated import SimulatedFilesystem

__all__ = [
    "DEFAULT_DIRECTORY_MODE",
    "DEFAULT_FILE_MODE",
    "DiskFilesystem",
    "EntryKind",
    "EntryStat",
    "Filesystem",
    "FilesystemError",
    "MemoryFilesystem",
    "SimulatedFilesystem",
]
