"""Sources of version stamps.

:class:`remotestorage.storage.metadata.MetadataStorage` accepts any object
with a ``get()`` method returning a fresh token. Tokens end up in ETags and
must be safe to use in URLs and file names.
"""

import secrets


class Random:
    """Hex tokens from the operating system's CSPRNG."""

    def __init__(self, nbytes=16):
        self.nbytes = nbytes

    def get(self):
        return secrets.token_hex(self.nbytes)
