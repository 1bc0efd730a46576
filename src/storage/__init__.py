from .errors import StorageError, StorageReadError, StorageWriteError
from .pending_action import PENDING_ACTION_KEY, PendingAction, PendingActionMailbox
from .persistence import PersistenceController, decode_blob, encode_blob
from .stores import BlobStore, FileBlobStore, MemoryBlobStore

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "MemoryBlobStore",
    "PENDING_ACTION_KEY",
    "PendingAction",
    "PendingActionMailbox",
    "PersistenceController",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "decode_blob",
    "encode_blob",
]
