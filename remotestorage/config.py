"""Configuration of the storage stack and of logging.

The storage directory is taken from the ``REMOTESTORAGE_DIR`` environment
variable unless given explicitly, and it holds:
- ``documents/`` document contents,
- ``tmp/`` documents being written,
- ``locks/`` per-user lock files,
- ``db/`` the SQLite version ledger, unless ``REMOTESTORAGE_DB_URL``
  points to another database.
"""

import copy
import json
import logging
import logging.config
import os

from remotestorage.remote_storage import RemoteStorage
from remotestorage.storage.documents import DocumentStorage
from remotestorage.storage.metadata import MetadataStorage, create_engine
from remotestorage.utils import mkdir


DIR_ENV = 'REMOTESTORAGE_DIR'
DB_URL_ENV = 'REMOTESTORAGE_DB_URL'


logger = logging.getLogger(__name__)


_DEFAULT_LOG_CONFIG = {
  'version': 1,
  'disable_existing_loggers': False,
  'handlers': {
    'default': {
      'class': 'logging.StreamHandler',
      'formatter': 'precise',
      'level': 'INFO',
      'stream': 'ext://sys.stdout'
    }
  },
  'formatters': {
    'precise': {
      'format': '%(asctime)s %(levelname)-8s %(name)-15s %(message)s',
      'datefmt': '%Y-%m-%d %H:%M:%S'
    }
  },
  'loggers': {
    'sqlalchemy': {
      'handlers': ['default'],
      'level': 'WARNING',
      'propagate': False
    },
    '': {
      'handlers': ['default'],
      'level': 'INFO'
    }
  }
}


def configure_logging(log=None, log_config=None, level=None):
    """Sets up logging for command-line tools.

    Args:
        log: log file location, stdout if ``None``
        log_config: path to a logging configuration in JSON
            (``logging.config.dictConfig`` schema); takes precedence
            over ``log``
        level: level name overriding the default ``INFO``
    """
    if log_config:
        with open(log_config) as f:
            config = json.load(f)
    else:
        config = copy.deepcopy(_DEFAULT_LOG_CONFIG)
        if log:
            config['handlers']['default'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'formatter': 'precise',
                'filename': log,
                'maxBytes': 1024 * 1024,
                'backupCount': 3
            }
        if level:
            config['handlers']['default']['level'] = level
            config['loggers']['']['level'] = level

    logging.config.dictConfig(config)


def default_db_url(storage_dir):
    return 'sqlite:///' + os.path.join(storage_dir, 'db', 'metadata.sqlite')


def open_storage(dir=None, db_url=None, random=None):
    """Builds a ready to use :class:`RemoteStorage`.

    Args:
        dir: storage directory, ``$REMOTESTORAGE_DIR`` if ``None``
            Created if it doesn't exist.
        db_url: SQLAlchemy URL of the version ledger
            ``$REMOTESTORAGE_DB_URL`` if ``None``, and a SQLite database
            inside ``dir`` if that's not set either.
        random: source of version stamps, see
            :class:`remotestorage.storage.random.Random`
    """
    if dir is None:
        if DIR_ENV not in os.environ:
            raise AssertionError("Storage directory must be specified "
                    "either as an argument or passed via {} environment "
                    "variable.".format(DIR_ENV))
        dir = os.environ[DIR_ENV]

    dir = os.path.abspath(dir)
    mkdir(dir)

    if db_url is None:
        db_url = os.environ.get(DB_URL_ENV) or default_db_url(dir)
    if db_url == default_db_url(dir):
        mkdir(os.path.join(dir, 'db'))

    logger.debug('Opening storage in %s (ledger: %s).', dir, db_url)
    metadata = MetadataStorage(create_engine(db_url), random)
    metadata.init_database()

    return RemoteStorage(metadata, DocumentStorage(dir),
                         os.path.join(dir, 'locks'))
