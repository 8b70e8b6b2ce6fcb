"""The two stores behind :class:`remotestorage.RemoteStorage`."""

# Reexport under shorter path.
from remotestorage.storage.documents import DocumentStorage
from remotestorage.storage.metadata import MetadataStorage, VersionRecord
