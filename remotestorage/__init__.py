"""remotestorage is a per-user store of versioned documents organised in
   folders, as used by remoteStorage servers.

   Every document and folder carries an opaque version which changes
   whenever the document, or anything below the folder, changes. Clients
   use versions for conditional writes (``if_match``, ``if_none_match``)
   and for cheap change detection on reads.

   ------------------
   Paths and versions
   ------------------

   A path looks like ``/<user>/<segment>/.../<name>`` for documents and ends
   with a slash for folders. Segments are percent-encoded; paths which decode
   to ``.``/``..``, contain ``/`` or NUL inside a segment, or are encoded
   twice are rejected with :class:`remotestorage.exceptions.PathError`.

   Versions look like ``<counter>:<stamp>``, where the counter grows with
   every change and the stamp is random.

   -----------------------
   Configuration and usage
   -----------------------

   Probably the only function you'd like to know and use is
   :func:`remotestorage.config.open_storage`, which returns a ready to use
   :class:`remotestorage.remote_storage.RemoteStorage`.

   .. autofunction:: remotestorage.config.open_storage

   .. autoclass:: remotestorage.remote_storage.RemoteStorage
       :members:

   ----------------------------------
   Using remotestorage from the shell
   ----------------------------------

   To fiddle with a storage directory from the shell::

     $ remotestorage --help

   If a crash left documents and versions out of sync, stop all writers and
   run::

     $ remotestorage-recover --help

   ----------------------
   API Reference
   ----------------------

   .. autoclass:: remotestorage.path.Path
       :members:

   .. autoclass:: remotestorage.storage.documents.DocumentStorage
       :members:

   .. autoclass:: remotestorage.storage.metadata.MetadataStorage
       :members:
"""
