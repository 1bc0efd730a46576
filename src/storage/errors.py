class StorageError(Exception):
    """Base exception for snapshot persistence."""


class StorageReadError(StorageError):
    """Raised when a stored blob cannot be read or decoded."""


class StorageWriteError(StorageError):
    """Raised when a blob cannot be written to its backing store."""
