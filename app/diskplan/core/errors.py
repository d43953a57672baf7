"""Base exception shared by all diskplan error hierarchies."""


class DiskplanError(Exception):
    """Base exception for all diskplan errors."""
