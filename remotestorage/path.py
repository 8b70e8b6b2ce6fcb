"""Path parsing and validation.

A path names either a document (``/admin/contacts/work/colleagues.vcf``)
or a folder (``/admin/contacts/work/``, note the closing slash). The first
segment is always the user id, and if the second one is ``public``, the
path refers to the user's public area.

Paths reaching this module may still contain percent-escapes. Each segment
is decoded separately before it is validated, so that encoded separators
(``%2f``) and encoded traversal sequences (``%2e%2e``) are rejected just
like their plain forms.
"""

from urllib.parse import unquote

from remotestorage.exceptions import PathError


_PUBLIC = 'public'


class Path:
    """An immutable, validated storage path.

    Raises :class:`PathError` if ``path`` is not a string or is not a valid
    path. Two paths compare equal if their normalized forms are equal.
    """

    __slots__ = ('_path', '_parts')

    def __init__(self, path):
        if not isinstance(path, str):
            raise PathError('invalid path')

        parts = path.split('/')
        if len(parts) < 3 or parts[0]:
            raise PathError('invalid path')

        decoded = ['']
        last = len(parts) - 1
        for i in range(1, len(parts)):
            if not parts[i]:
                if i == last:
                    decoded.append('')
                    continue
                raise PathError('invalid path: empty segment')
            decoded.append(_decode_segment(parts[i]))

        self._parts = tuple(decoded)
        self._path = '/'.join(decoded)

    @property
    def path(self):
        """The normalized (decoded) path string."""
        return self._path

    @property
    def user_id(self):
        return self._parts[1]

    @property
    def is_public(self):
        return self._parts[2] == _PUBLIC

    @property
    def is_folder(self):
        return self._parts[-1] == ''

    @property
    def is_document(self):
        return not self.is_folder

    @property
    def module_name(self):
        """The segment naming the application folder, or ``None``.

        It's the segment after the user id (or after ``public``), but only
        when that segment is itself a folder.
        """
        index = 3 if self.is_public else 2
        if len(self._parts) > index + 1:
            return self._parts[index]
        return None

    @property
    def name(self):
        """Last segment; folders keep their closing slash."""
        if self.is_folder:
            return self._parts[-2] + '/'
        return self._parts[-1]

    @property
    def parent(self):
        """Path string of the containing folder, ``None`` for a user root."""
        if self.is_folder:
            if len(self._parts) <= 3:
                return None
            return '/'.join(self._parts[:-2]) + '/'
        return '/'.join(self._parts[:-1]) + '/'

    @property
    def ancestor_folders(self):
        """Folders that have to exist for this path, user root first.

        For a folder the list ends with the folder itself, for a document
        it ends with the document's parent.
        """
        return ['/'.join(self._parts[:i]) + '/'
                for i in range(2, len(self._parts))]

    def __eq__(self, other):
        if not isinstance(other, Path):
            return NotImplemented
        return self._path == other._path

    def __hash__(self):
        return hash(self._path)

    def __str__(self):
        return self._path

    def __repr__(self):
        return 'Path({!r})'.format(self._path)


def as_path(path):
    """Returns ``path`` as a :class:`Path`, parsing it if it's a string."""
    if isinstance(path, Path):
        return path
    return Path(path)


def _decode_segment(segment):
    if segment in ('.', '..'):
        raise PathError('invalid path: "." or ".." segment')

    try:
        decoded = unquote(segment, errors='strict')
    except UnicodeDecodeError:
        raise PathError('invalid path: bad percent-encoding')

    if decoded in ('.', '..'):
        raise PathError('invalid path: encoded "." or ".." segment')
    if '/' in decoded:
        raise PathError('invalid path: encoded path separator')
    if '\0' in decoded:
        raise PathError('invalid path: NUL in segment')
    # Double-encoded segments would decode differently the next time
    # the path is parsed.
    if unquote(decoded) != decoded:
        raise PathError('invalid path: double percent-encoding')
    return decoded


def as_document_path(path):
    """Like :func:`as_path`, but also rejects folder paths."""
    path = as_path(path)
    if not path.is_document:
        raise PathError('not a document path: {}'.format(path))
    return path


def as_folder_path(path):
    """Like :func:`as_path`, but also rejects document paths."""
    path = as_path(path)
    if not path.is_folder:
        raise PathError('not a folder path: {}'.format(path))
    return path
