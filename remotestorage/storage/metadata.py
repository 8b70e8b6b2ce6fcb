"""This module keeps the version ledger.

Every existing document and folder has one row in the ``versions`` table,
keyed by its exact path string. A row holds:
- a counter, incremented every time the path is touched by a mutation,
- a random stamp, generated once per mutation and shared by all paths the
  mutation touched,
- for documents, the content type and length of the current contents.

The version string clients see (their ETag) is ``"<counter>:<stamp>"``.

Rows of a single mutation are written in one DB transaction. Callers
which need to combine several calls into one transaction pass the handle
obtained from :meth:`MetadataStorage.transaction` as ``txn``.
"""

import collections
import contextlib
import logging

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.pool import StaticPool

from remotestorage.storage.random import Random


logger = logging.getLogger(__name__)


# Dialects with INSERT .. ON CONFLICT DO UPDATE.
_UPSERT_INSERTS = {
    'sqlite': sqlite.insert,
    'postgresql': postgresql.insert,
}


metadata = sa.MetaData()

versions = sa.Table(
    'versions', metadata,
    sa.Column('path', sa.String(1024), primary_key=True),
    sa.Column('counter', sa.Integer, nullable=False),
    sa.Column('stamp', sa.String(64), nullable=False),
    sa.Column('content_type', sa.String(255), nullable=True),
    sa.Column('content_length', sa.BigInteger, nullable=True),
)


class VersionRecord(collections.namedtuple(
        'VersionRecord',
        ['counter', 'stamp', 'content_type', 'content_length'])):
    """A row of the ledger.

    ``content_type`` and ``content_length`` are ``None`` for folders.
    """
    __slots__ = ()

    @property
    def version(self):
        return '{}:{}'.format(self.counter, self.stamp)


def create_engine(url, **kwargs):
    """``sqlalchemy.create_engine``, with in-memory SQLite usable from
    several threads (they all share a single connection)."""
    url = sa.engine.make_url(url)
    if url.get_backend_name() == 'sqlite' \
            and url.database in (None, '', ':memory:'):
        kwargs.setdefault('poolclass', StaticPool)
        kwargs.setdefault('connect_args', {'check_same_thread': False})
    return sa.create_engine(url, **kwargs)


class MetadataStorage:
    """Version ledger stored in a relational database.

    Args:
        engine: SQLAlchemy engine (see :func:`create_engine`).
        random: source of stamps, an object with a ``get()`` method.
            Defaults to :class:`remotestorage.storage.random.Random`.
    """

    def __init__(self, engine, random=None):
        self.engine = engine
        self.random = random if random is not None else Random()
        self.dialect = engine.dialect.name

    def init_database(self):
        """Creates the table if it doesn't exist yet."""
        logger.info('Attempting to create and/or initialize database.')
        metadata.create_all(self.engine)

    @contextlib.contextmanager
    def transaction(self, txn=None):
        """Runs the body of the `with` statement in a DB transaction.

        If ``txn`` is given, the body joins that transaction instead and
        nothing is committed here.
        """
        if txn is not None:
            yield txn
            return

        conn = self.engine.connect()
        try:
            db_txn = conn.begin()
            logger.debug('Started DB transaction.')
            try:
                yield conn
            except BaseException:
                db_txn.rollback()
                logger.debug('Rolled back DB transaction.')
                raise
            else:
                db_txn.commit()
                logger.debug('Committed DB transaction.')
        finally:
            conn.close()

    def bump(self, path, touched, content_type=None, content_length=None,
             txn=None):
        """Gives every path in ``touched`` a new version.

        One stamp is generated for the whole call, while every path keeps
        its own counter, which is incremented (or starts at 1).

        Args:
            path: the path that was mutated.
                ``content_type`` and ``content_length``, if given, are
                recorded for this path only.
            touched: paths to bump, usually ``path`` and its ancestors.
            txn: transaction to join, see :meth:`transaction`.

        Returns the new stamp.
        """
        path = str(path)
        stamp = self.random.get()

        with self.transaction(txn) as conn:
            for name in touched:
                values = {'stamp': stamp}
                if name == path:
                    if content_type is not None:
                        values['content_type'] = content_type
                    if content_length is not None:
                        values['content_length'] = content_length
                self._increment(conn, name, values)

        logger.debug('Bumped %d paths to stamp %s.', len(touched), stamp)
        return stamp

    def remove(self, path, txn=None):
        """Deletes the record of ``path``; a no-op if there's none."""
        with self.transaction(txn) as conn:
            conn.execute(
                versions.delete().where(versions.c.path == str(path)))
        logger.debug('Removed version of %s.', path)

    def get_version(self, path, txn=None):
        """Returns the :class:`VersionRecord` of ``path`` or ``None``."""
        with self.transaction(txn) as conn:
            row = conn.execute(
                sa.select(versions.c.counter, versions.c.stamp,
                          versions.c.content_type, versions.c.content_length)
                .where(versions.c.path == str(path))).first()
        if row is None:
            return None
        return VersionRecord(*row)

    def get_versions(self, paths, txn=None):
        """Returns a dict mapping each of ``paths`` that has a record to
        its :class:`VersionRecord`, read in a single statement."""
        paths = [str(p) for p in paths]
        if not paths:
            return {}
        with self.transaction(txn) as conn:
            rows = conn.execute(
                sa.select(versions.c.path, versions.c.counter,
                          versions.c.stamp, versions.c.content_type,
                          versions.c.content_length)
                .where(versions.c.path.in_(paths))).all()
        return {row[0]: VersionRecord(*row[1:]) for row in rows}

    def all_paths(self, txn=None):
        """Returns paths of all records, sorted."""
        with self.transaction(txn) as conn:
            rows = conn.execute(
                sa.select(versions.c.path).order_by(versions.c.path)).all()
        return [row[0] for row in rows]

    def set_content_length(self, path, content_length, txn=None):
        """Overwrites the recorded length without changing the version.

        Only meant for repairs, see ``remotestorage.scripts.recover``.
        """
        with self.transaction(txn) as conn:
            conn.execute(
                versions.update()
                .where(versions.c.path == str(path))
                .values(content_length=content_length))

    def _increment(self, conn, path, values):
        """Atomic read-increment-write of the counter of ``path``."""
        insert = _UPSERT_INSERTS.get(self.dialect)
        if insert is not None:
            stmt = insert(versions).values(path=path, counter=1, **values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[versions.c.path],
                set_=dict(values, counter=versions.c.counter + 1))
            conn.execute(stmt)
            return

        # Other backends: the row lock taken by UPDATE serializes writers
        # of existing rows; creation of new rows is serialized by the
        # per-user lock of RemoteStorage.
        result = conn.execute(
            versions.update()
            .where(versions.c.path == path)
            .values(counter=versions.c.counter + 1, **values))
        if result.rowcount == 0:
            conn.execute(versions.insert().values(
                path=path, counter=1, **values))
