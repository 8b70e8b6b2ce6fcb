"""Errors raised by the storage core.

The transport layer is expected to map them onto protocol status codes,
e.g. ``NotModifiedError`` to ``304``, ``ConflictError`` to ``412`` or
``409`` and ``NotFoundError`` to ``404``.
"""

PATH_IS_FOLDER = 'path is already a folder'
FILE_BLOCKS_FOLDER = 'file exists, blocks folder creation'
DOCUMENT_EXISTS = 'document already exists'
VERSION_MISMATCH = 'version mismatch'

DOCUMENT_NOT_MODIFIED = 'document not modified'
FOLDER_NOT_MODIFIED = 'folder not modified'


class RemoteStorageError(Exception):
    pass


class PathError(RemoteStorageError, ValueError):
    """Raised for malformed or unsafe paths, before any storage access."""


class NotFoundError(RemoteStorageError):
    pass


class ConflictError(RemoteStorageError):
    """Structural or version conflict.

    ``reason`` is one of the module-level reason strings, so callers can
    tell conflicts apart without parsing messages.
    """
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class NotModifiedError(RemoteStorageError):
    """Conditional read matched the current version.

    This is not a failure: the caller's copy is up to date.
    """
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class ConsistencyError(RemoteStorageError):
    """Content was changed but the version ledger could not follow.

    Run ``remotestorage-recover`` to bring both stores back in line.
    """


class ConcurrentModificationError(RemoteStorageError):
    """Raised after acquiring lock failed multiple times."""
    def __init__(self, lock_name):
        message = 'Failed to acquire lock: {}'.format(lock_name)
        super().__init__(message)
        self.lock_name = lock_name
