from optparse import OptionParser
import json
import logging
import mimetypes
import shutil
import sys

from remotestorage.config import open_storage
from remotestorage.exceptions import RemoteStorageError


_DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def _make_command_parser(cmd, extra_usage=''):
    usage = "usage: %prog [options] command [command-specific options] " \
            + extra_usage
    description = "Help for command '%s'" % cmd
    return OptionParser(usage=usage, description=description)


def _split_tokens(value):
    if value is None:
        return None
    return [t.strip() for t in value.split(',') if t.strip()]


def cmd_put(storage, *args):
    parser = _make_command_parser('put', "local_filename path")
    parser.add_option('-t', '--content-type', dest='content_type',
            default=None,
            help="Content type of the document (guessed from the local "
                 "filename by default)")
    parser.add_option('--if-match', dest='if_match', default=None,
            help="Comma-separated versions, one of which the document "
                 "must have")
    parser.add_option('--if-none-match', dest='if_none_match',
            default=None,
            help="Pass '*' to only create a new document")
    options, args = parser.parse_args(list(args))
    if not args:
        parser.error("Missing local filename")
    if len(args) == 1:
        parser.error("Missing document path")
    if len(args) > 2:
        parser.error("Too many arguments")

    content_type = options.content_type
    if content_type is None:
        content_type = mimetypes.guess_type(args[0])[0] \
                or _DEFAULT_CONTENT_TYPE

    with open(args[0], 'rb') as f:
        print(storage.put_document(args[1], content_type, f,
                                   if_match=_split_tokens(options.if_match),
                                   if_none_match=_split_tokens(
                                       options.if_none_match)))


def cmd_get(storage, *args):
    parser = _make_command_parser('get', "path local_filename")
    options, args = parser.parse_args(list(args))
    if not args:
        parser.error("Missing document path")
    if len(args) == 1:
        parser.error("Missing local filename")
    if len(args) > 2:
        parser.error("Too many arguments")

    document = storage.get_document(args[0], stream=True)
    with document.data as src, open(args[1], 'wb') as dest:
        shutil.copyfileobj(src, dest)
    print(document.version)


def cmd_cat(storage, *args):
    parser = _make_command_parser('cat', "path")
    options, args = parser.parse_args(list(args))
    if not args:
        parser.error("Missing document path")
    if len(args) > 1:
        parser.error("Too many arguments")

    document = storage.get_document(args[0], stream=True)
    with document.data as src:
        sys.stdout.flush()
        shutil.copyfileobj(src, sys.stdout.buffer)
        sys.stdout.buffer.flush()


def cmd_rm(storage, *args):
    parser = _make_command_parser('rm', "path")
    parser.add_option('--if-match', dest='if_match', default=None,
            help="Comma-separated versions, one of which the document "
                 "must have")
    options, args = parser.parse_args(list(args))
    if not args:
        parser.error("Missing document path")
    if len(args) > 1:
        parser.error("Too many arguments")

    for path in storage.delete_document(
            args[0], if_match=_split_tokens(options.if_match)):
        print(path)


def cmd_ls(storage, *args):
    parser = _make_command_parser('ls', "folder_path")
    options, args = parser.parse_args(list(args))
    if not args:
        parser.error("Missing folder path")
    if len(args) > 1:
        parser.error("Too many arguments")

    print(json.dumps(storage.get_folder(args[0]), indent=2, sort_keys=True))


def cmd_version(storage, *args):
    parser = _make_command_parser('version', "path")
    options, args = parser.parse_args(list(args))
    if not args:
        parser.error("Missing path")
    if len(args) > 1:
        parser.error("Too many arguments")

    version = storage.get_version(args[0])
    if version is None:
        print("No such document or folder", file=sys.stderr)
        sys.exit(1)
    print(version)


def main(argv=None):
    usage = "usage: %prog [options] command [command-specific options]"
    commands = [s for s in globals() if s.startswith('cmd_')]
    commands = sorted([s[4:] for s in commands])
    epilog = """
Options specified above are filled from environment
(REMOTESTORAGE_DIR, REMOTESTORAGE_DB_URL)
if not specified on the command line.

Each command has its own --help text.

Supported commands: %s.""" % ', '.join(commands)
    parser = OptionParser(usage=usage, epilog=epilog)
    parser.disable_interspersed_args()

    parser.add_option('-d', '--dir', dest='dir', default=None,
            help="Storage directory")
    parser.add_option('--db-url', dest='db_url', default=None,
            help="SQLAlchemy URL of the version database")
    parser.add_option('-v', '--verbose', dest='verbose', default=0,
            action='count', help="Be verbose")

    options, args = parser.parse_args(argv)
    if not args:
        parser.error("Missing command. Try --help for list of available "
                "commands.")
    cmd = globals().get('cmd_' + args[0],
            lambda *a: parser.error("Unknown command: " + args[0]))

    level = logging.WARNING
    if options.verbose:
        level = logging.DEBUG
    logging.basicConfig(
            format="%(asctime)-15s %(name)s %(levelname)s: %(message)s",
            level=level)

    try:
        storage = open_storage(options.dir, options.db_url)
        cmd(storage, *args[1:])
    except RemoteStorageError as e:
        print("%s: %s" % (type(e).__name__, e), file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
