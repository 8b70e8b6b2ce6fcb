"""Script for recovering storage consistency after failures."""

import argparse
import logging
import os
import sys

from remotestorage.config import configure_logging, open_storage
from remotestorage.exceptions import PathError
from remotestorage.path import Path
from remotestorage.scripts import progress_bar

_DESCRIPTION = """
Restores consistency between stored documents and the version database.


This script removes leftovers of interrupted writes, and then iterates
over all stored documents, creating missing version records (such
documents get a new version, and so do their folders) and correcting
recorded sizes.

It also removes empty folders, creates missing records of non-empty
folders and removes records of documents and folders that don't exist.

WARNING: this script does not use or respect locks, so DO NOT run
this while the storage is being used.
"""

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description=_DESCRIPTION)
    parser.add_argument('root', help='root directory of the storage')
    parser.add_argument('--db-url',
            help='SQLAlchemy URL of the version database, if it is not '
                 'the default one inside the root directory')
    parser.add_argument('-s', '--silent', action='store_true',
            help='if set, progress bar is not printed')
    parser.add_argument('-f', '--full', action='store_true',
            help='if set, recorded sizes of all documents are rewritten')
    parser.add_argument('-L', '--log', default=None,
            help='log file location (stdout by default)')

    args = parser.parse_args(argv)
    root = args.root
    silent = args.silent

    if not silent:
        configure_logging(log=args.log, level='WARNING')

    ensure_storage_format(root)
    storage = open_storage(root, args.db_url)
    stats = recover(storage, full=args.full, show_progress=not silent)

    if not silent:
        print('Completed, {missing_documents} missing document versions, '
              '{missing_folders} missing folder versions, '
              '{stale_records} stale versions, '
              '{empty_folders} empty folders and '
              '{stray_files} stray files found.'.format(**stats))


def recover(storage, full=False, show_progress=False):
    """Repairs ``storage`` (a :class:`RemoteStorage`) in place.

    Returns a dict of counters describing what had to be fixed.
    """
    documents = storage.documents
    metadata = storage.metadata
    stats = {
        'missing_documents': 0,
        'missing_folders': 0,
        'stale_records': 0,
        'empty_folders': 0,
        'stray_files': 0,
    }

    for name in os.listdir(documents.tmp_dir):
        logger.info('Removing unfinished write %s.', name)
        os.unlink(os.path.join(documents.tmp_dir, name))
        stats['stray_files'] += 1

    existing = set()

    with progress_bar.conditional(
            show=show_progress,
            widgets=progress_bar.widgets('Checking documents')) as bar:
        for processed, name in enumerate(documents.iter_documents(), 1):
            try:
                path = Path(name)
            except PathError:
                logger.warning('Ignoring %s: not a valid document path.',
                               name)
                stats['stray_files'] += 1
                continue

            existing.add(path.path)
            size = documents.document_size(path)
            record = metadata.get_version(path)
            if record is None:
                logger.info('Creating version of %s.', path)
                metadata.bump(path, [path.path] + path.ancestor_folders,
                              content_type=DEFAULT_CONTENT_TYPE,
                              content_length=size)
                stats['missing_documents'] += 1
            elif full or record.content_length != size:
                metadata.set_content_length(path, size)
            bar.update(processed)

    with progress_bar.conditional(
            show=show_progress,
            widgets=progress_bar.widgets('Checking folders')) as bar:
        processed = 0
        for cur_dir, _, _ in os.walk(documents.documents_dir, topdown=False):
            if cur_dir == documents.documents_dir:
                continue

            local_name = os.path.relpath(cur_dir, documents.documents_dir)
            name = '/' + local_name.replace(os.sep, '/') + '/'
            if not os.listdir(cur_dir):
                logger.info('Removing empty folder %s.', name)
                os.rmdir(cur_dir)
                stats['empty_folders'] += 1
                continue

            try:
                path = Path(name)
            except PathError:
                logger.warning('Ignoring %s: not a valid folder path.', name)
                continue

            existing.add(path.path)
            if metadata.get_version(path) is None:
                logger.info('Creating version of %s.', path)
                metadata.bump(path, path.ancestor_folders)
                stats['missing_folders'] += 1

            processed += 1
            bar.update(processed)

    for name in metadata.all_paths():
        if name not in existing:
            logger.info('Removing version of %s.', name)
            metadata.remove(name)
            stats['stale_records'] += 1

    return stats


def ensure_storage_format(root_dir):
    """Checks if the directory looks like a storage directory.

    Exits with error if it doesn't.
    """
    if not os.path.isdir(os.path.join(root_dir, 'documents')):
        print('"documents/" directory not found')
        sys.exit(1)

    if not os.path.isdir(os.path.join(root_dir, 'tmp')):
        print('"tmp/" directory not found')
        sys.exit(1)


if __name__ == '__main__':
    main()
