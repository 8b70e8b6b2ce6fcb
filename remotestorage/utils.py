"""Filesystem and locking routines shared by the storage modules."""

import contextlib
import errno
import fcntl
import logging
import os
import shutil

import gevent

from remotestorage.exceptions import ConcurrentModificationError


_LOCK_RETRIES = 100
_LOCK_SLEEP_TIME_S = 0.1

_BUFFER_SIZE = 64 * 1024


logger = logging.getLogger(__name__)


def mkdir(name):
    """``os.makedirs`` that treats an already existing directory as success.

    Raises ``FileExistsError`` if ``name`` (or one of its parents) exists
    but is not a directory.
    """
    try:
        os.makedirs(name, 0o700)
    except OSError as e:
        if e.errno != errno.EEXIST or not os.path.isdir(name):
            raise


def rmdirs(names):
    """Removes empty directories from ``names``, in the given order.

    Stops at the first directory which is not empty (or is already gone)
    and returns the list of directories actually removed.
    """
    removed = []
    for name in names:
        try:
            os.rmdir(name)
        except OSError as e:
            if e.errno in (errno.ENOTEMPTY, errno.EEXIST, errno.ENOENT):
                break
            raise
        removed.append(name)
    return removed


def copy_stream(src, dest, length=0):
    """Similar to shutil.copyfileobj, but supports limiting data size.

    Args:
        src: source file-like object
        dest: destination file-like object
        length: optional file size hint
            If not 0, at most length bytes will be written.
            If 0, write will continue until EOF is encountered.
    """
    if length == 0:
        shutil.copyfileobj(src, dest, _BUFFER_SIZE)
        return

    bytes_left = length
    while bytes_left > 0:
        buf = src.read(min(_BUFFER_SIZE, bytes_left))
        if not buf:
            break
        dest.write(buf)
        bytes_left -= len(buf)


@contextlib.contextmanager
def exclusive_lock(path):
    """A simple wrapper for fcntl exclusive lock.

    Every acquisition opens its own descriptor, so the lock excludes
    other threads of the same process as well as other processes.
    """
    mkdir(os.path.dirname(path))
    fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o600)
    success = False

    try:
        retries_left = _LOCK_RETRIES

        while retries_left > 0:
            # gevent doesn't treat flock as IO, so blocking here
            # would stall every other green thread of the worker.
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                success = True
                break
            except OSError as e:
                if e.errno in (errno.EAGAIN, errno.EWOULDBLOCK):
                    gevent.sleep(_LOCK_SLEEP_TIME_S)
                    retries_left -= 1
                else:
                    raise

        if not success:
            raise ConcurrentModificationError(path)
        logger.debug('Acquired lock %s.', path)
        yield
    finally:
        if success:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug('Released lock %s.', path)
        os.close(fd)


@contextlib.contextmanager
def no_lock():
    """Does nothing, just runs the code within the `with` statement.
       Used for conditional locking."""
    yield
