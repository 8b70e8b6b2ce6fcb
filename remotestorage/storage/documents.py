"""This module is responsible for storing document contents on disk.

The storage strategy is as follows:
- Documents are stored in a directory called 'documents', at a location
  mirroring their path, e.g. ``/admin/notes/todo.txt`` is kept in
  ``documents/admin/notes/todo.txt``.
- Folders are plain directories. They are never created on their own,
  only as a side effect of storing a document beneath them, and they are
  removed as soon as the last document beneath them is deleted.
- A path segment is either a folder or a document, never both. Writes
  violating this are rejected before anything is changed on disk.
- New contents are first written to a temporary file in 'tmp' and then
  renamed into place, so readers never see a partially written document.

Nothing here knows about versions: see ``remotestorage.storage.metadata``.
"""

import logging
import os
import tempfile

from remotestorage.exceptions import (ConflictError, NotFoundError,
                                      FILE_BLOCKS_FOLDER, PATH_IS_FOLDER)
from remotestorage.path import as_document_path, as_folder_path
from remotestorage.utils import copy_stream, mkdir, rmdirs


logger = logging.getLogger(__name__)


class DocumentStorage:
    """Manages document contents of all users under ``base_dir``."""

    def __init__(self, base_dir):
        self.base_dir = base_dir
        self.documents_dir = os.path.join(base_dir, 'documents')
        self.tmp_dir = os.path.join(base_dir, 'tmp')

        mkdir(self.documents_dir)
        mkdir(self.tmp_dir)

    def put_document(self, path, data, size=0):
        """Stores a document, creating the folders it needs.

        Args:
            path: document path (a string or :class:`Path`).
            data: document contents, either ``bytes`` or a binary
                file-like object.
            size: length of ``data`` in bytes, if it is a stream
                If not 0, at most this many bytes are read from ``data``.

        Returns the list of ancestor folders of ``path``, whether they
        existed before or not.
        """
        path = as_document_path(path)
        folders = path.ancestor_folders

        for folder in folders:
            local_folder = self._local_path(folder)
            if _path_exists(local_folder) and not os.path.isdir(local_folder):
                raise ConflictError(FILE_BLOCKS_FOLDER)

        local_path = self._local_path(path.path)
        if os.path.isdir(local_path):
            raise ConflictError(PATH_IS_FOLDER)

        # Deepest first, so that a failed write can undo them with rmdirs.
        created = [self._local_path(folder) for folder in reversed(folders)
                   if not os.path.isdir(self._local_path(folder))]

        try:
            # Creates the whole chain; folders made in the meantime by
            # other writers are fine.
            mkdir(self._local_path(folders[-1]))
        except (FileExistsError, NotADirectoryError):
            rmdirs(created)
            raise ConflictError(FILE_BLOCKS_FOLDER)

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.tmp_dir)
            with os.fdopen(fd, 'wb') as dest:
                if isinstance(data, (bytes, bytearray, memoryview)):
                    dest.write(data)
                else:
                    copy_stream(data, dest, size)

            if _path_exists(local_path):
                logger.info('Overwriting existing document %s.', path)
            try:
                os.rename(tmp_path, local_path)
            except IsADirectoryError:
                raise ConflictError(PATH_IS_FOLDER)
        except BaseException:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            removed = rmdirs(created)
            if removed:
                logger.debug('Removed folders %s after failed write of %s.',
                             removed, path)
            raise

        logger.debug('Stored document %s.', path)
        return folders

    def get_document(self, path):
        """Returns the contents of the document as ``bytes``."""
        with self.open_document(path) as f:
            return f.read()

    def open_document(self, path):
        """Returns the document opened as a binary file.

        The caller is responsible for closing it. A document replaced
        while the file is open keeps its old contents for this reader.
        """
        path = as_document_path(path)
        local_path = self._local_path(path.path)
        if not os.path.isfile(local_path):
            raise NotFoundError('document not found: {}'.format(path))
        try:
            return open(local_path, 'rb')
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise NotFoundError('document not found: {}'.format(path))

    def document_size(self, path):
        path = as_document_path(path)
        local_path = self._local_path(path.path)
        if not os.path.isfile(local_path):
            raise NotFoundError('document not found: {}'.format(path))
        return os.stat(local_path).st_size

    def delete_document(self, path):
        """Removes a document and the folders left empty by its removal.

        Returns a list starting with the document path, followed by the
        paths of removed folders, deepest first. Folders above the first
        non-empty one are not touched.
        """
        path = as_document_path(path)
        local_path = self._local_path(path.path)
        if not os.path.isfile(local_path):
            raise NotFoundError('document not found: {}'.format(path))

        try:
            os.unlink(local_path)
        except FileNotFoundError:
            raise NotFoundError('document not found: {}'.format(path))
        logger.debug('Deleted document %s.', path)

        folders = list(reversed(path.ancestor_folders))
        removed = rmdirs([self._local_path(f) for f in folders])
        removed_folders = folders[:len(removed)]
        if removed_folders:
            logger.debug('Removed empty folders %s.', removed_folders)

        return [path.path] + removed_folders

    def get_folder(self, path):
        """Lists direct children of a folder.

        Returns a dict mapping document names to ``{'Content-Length':
        size}`` and subfolder names (with a closing slash) to ``{}``.
        A folder which does not exist is listed as empty.
        """
        path = as_folder_path(path)
        local_path = self._local_path(path.path)

        try:
            names = sorted(os.listdir(local_path))
        except (FileNotFoundError, NotADirectoryError):
            return {}

        items = {}
        for name in names:
            child = os.path.join(local_path, name)
            try:
                if os.path.isdir(child):
                    items[name + '/'] = {}
                else:
                    items[name] = {'Content-Length': os.stat(child).st_size}
            except FileNotFoundError:
                # Removed while we were listing.
                continue
        return items

    def iter_documents(self):
        """Yields paths of all stored documents, in no particular order."""
        for cur_dir, _, files in os.walk(self.documents_dir):
            rel_dir = os.path.relpath(cur_dir, self.documents_dir)
            for file_name in files:
                rel_path = os.path.normpath(os.path.join(rel_dir, file_name))
                yield '/' + rel_path.replace(os.sep, '/')

    def _local_path(self, name):
        return os.path.join(self.documents_dir, *name.strip('/').split('/'))


def _path_exists(path):
    """Checks if the path exists
       - is a file, a directory or a symbolic link that may be broken."""
    return os.path.exists(path) or os.path.islink(path)
