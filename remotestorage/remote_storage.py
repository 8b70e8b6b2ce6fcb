"""The public face of the storage core.

:class:`RemoteStorage` combines document contents
(:class:`~remotestorage.storage.documents.DocumentStorage`) with the
version ledger (:class:`~remotestorage.storage.metadata.MetadataStorage`)
and implements conditional requests on top of them.

Every mutating operation:
- takes the exclusive lock of the user owning the path,
- checks its preconditions (``if_match``/``if_none_match``),
- changes the document contents,
- updates the ledger in a single DB transaction.

Contents always change before the ledger. If the ledger update fails
afterwards, :class:`~remotestorage.exceptions.ConsistencyError` is raised
and the store has to be repaired with ``remotestorage-recover``.
"""

import collections
import logging
import os

from remotestorage.exceptions import (ConflictError, ConsistencyError,
                                      NotModifiedError,
                                      DOCUMENT_EXISTS, DOCUMENT_NOT_MODIFIED,
                                      FOLDER_NOT_MODIFIED, VERSION_MISMATCH)
from remotestorage.path import as_document_path, as_folder_path, as_path
from remotestorage.utils import exclusive_lock, no_lock


FOLDER_CONTEXT = 'http://remotestorage.io/spec/folder-description'

WILDCARD = '*'


logger = logging.getLogger(__name__)


Document = collections.namedtuple(
    'Document', ['data', 'version', 'content_type', 'content_length'])
"""A document read from the storage.

    Fields:

    * ``data`` contents as ``bytes``, or an open binary file when
      requested with ``stream=True``
    * ``version`` version string, suitable for an ETag
    * ``content_type`` content type given when the document was stored
    * ``content_length`` size in bytes
"""


class RemoteStorage:
    """Versioned document storage of many users.

    Args:
        metadata: a :class:`MetadataStorage`.
        documents: a :class:`DocumentStorage`.
        locks_dir: directory for per-user lock files
            If ``None``, mutations are not locked, which is only safe
            when there's a single thread working on the storage.
    """

    def __init__(self, metadata, documents, locks_dir=None):
        self.metadata = metadata
        self.documents = documents
        self.locks_dir = locks_dir

    def put_document(self, path, content_type, data, if_match=None,
                     if_none_match=None):
        """Creates or replaces a document.

        Args:
            path: document path.
            content_type: content type to report for the document.
            data: ``bytes`` or a binary file-like object.
            if_match: if not ``None``, a list of versions, one of which
                must be the current version of the document.
            if_none_match: if it contains ``'*'``, the document must not
                exist yet.

        Returns the new version of the document.
        """
        path = as_document_path(path)

        with self._user_lock(path):
            current = self.get_version(path)
            if if_none_match and WILDCARD in if_none_match \
                    and current is not None:
                raise ConflictError(DOCUMENT_EXISTS)
            if if_match is not None and not _matches(current, if_match):
                raise ConflictError(VERSION_MISMATCH)

            folders = self.documents.put_document(path, data)
            try:
                content_length = self.documents.document_size(path)
                self.metadata.bump(path, [path.path] + folders,
                                   content_type=content_type,
                                   content_length=content_length)
                version = self.get_version(path)
            except Exception as e:
                logger.error('Stored %s, but failed to update its version.',
                             path, exc_info=True)
                raise ConsistencyError(
                    'version of {} not updated: {}'.format(path, e)) from e

        logger.debug('Put %s (%s).', path, version)
        return version

    def get_document(self, path, if_none_match=None, stream=False):
        """Reads a document.

        Raises :class:`NotModifiedError` if the current version is in
        ``if_none_match``, and :class:`NotFoundError` if there is no such
        document.

        Returns a :data:`Document`. If ``stream`` is set, its ``data`` is
        an open binary file which the caller has to close.
        """
        path = as_document_path(path)

        record = self.metadata.get_version(path)
        current = record.version if record is not None else None
        if if_none_match and _matches(current, if_none_match):
            raise NotModifiedError(DOCUMENT_NOT_MODIFIED)

        if stream:
            data = self.documents.open_document(path)
            content_length = os.fstat(data.fileno()).st_size
        else:
            data = self.documents.get_document(path)
            content_length = len(data)

        content_type = record.content_type if record is not None else None
        return Document(data, current, content_type, content_length)

    def delete_document(self, path, if_match=None):
        """Deletes a document, and folders left empty by the deletion.

        Folders which are still non-empty get a new version, up to
        the user's root folder.

        Returns the paths removed, the document first and then the folders,
        deepest first.
        """
        path = as_document_path(path)

        with self._user_lock(path):
            if if_match is not None \
                    and not _matches(self.get_version(path), if_match):
                raise ConflictError(VERSION_MISMATCH)

            removed = self.documents.delete_document(path)
            folders = path.ancestor_folders
            surviving = folders[:len(folders) - (len(removed) - 1)]
            try:
                with self.metadata.transaction() as txn:
                    for name in removed:
                        self.metadata.remove(name, txn=txn)
                    if surviving:
                        self.metadata.bump(surviving[-1], surviving, txn=txn)
            except Exception as e:
                logger.error('Deleted %s, but failed to update versions.',
                             path, exc_info=True)
                raise ConsistencyError(
                    'versions of {} not updated: {}'.format(path, e)) from e

        logger.debug('Deleted %s, removed %s.', path, removed)
        return removed

    def get_folder(self, path, if_none_match=None):
        """Lists a folder.

        Raises :class:`NotModifiedError` if the current version is in
        ``if_none_match``. A folder which does not exist is listed as
        empty.

        Returns the folder description: a dict with ``@context`` and
        ``items`` keys, ready to be serialized as JSON.
        """
        path = as_folder_path(path)

        if if_none_match and _matches(self.get_version(path), if_none_match):
            raise NotModifiedError(FOLDER_NOT_MODIFIED)

        entries = self.documents.get_folder(path)
        records = self.metadata.get_versions(
            [path.path + name for name in entries])

        items = {}
        for name, entry in sorted(entries.items()):
            record = records.get(path.path + name)
            if record is None:
                # Written or deleted right now, or left behind by a failure.
                logger.warning('No version of %s%s, not listing it.',
                               path, name)
                continue
            if name.endswith('/'):
                items[name] = {'ETag': record.version}
            else:
                content_length = record.content_length
                if content_length is None:
                    content_length = entry['Content-Length']
                items[name] = {
                    'ETag': record.version,
                    'Content-Type': record.content_type,
                    'Content-Length': content_length,
                }

        return {'@context': FOLDER_CONTEXT, 'items': items}

    def get_version(self, path):
        """Returns the version string of ``path``, or ``None`` if it
        doesn't exist."""
        record = self.metadata.get_version(as_path(path))
        if record is None:
            return None
        return record.version

    def _user_lock(self, path):
        if self.locks_dir is None:
            return no_lock()
        return exclusive_lock(os.path.join(self.locks_dir, path.user_id))


def _matches(version, tokens):
    return version is not None and version in tokens
