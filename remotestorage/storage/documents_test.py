"""Tests for .documents module."""

from io import BytesIO
import os
import shutil
import tempfile
import threading
import unittest

from remotestorage.exceptions import (ConflictError, NotFoundError,
                                      PathError, FILE_BLOCKS_FOLDER,
                                      PATH_IS_FOLDER)
from remotestorage.path import Path
from remotestorage.storage.documents import DocumentStorage


class DocumentStorageTest(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.storage = DocumentStorage(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_put_document_should_return_ancestor_folders(self):
        folders = self.storage.put_document(Path('/foo/bar/baz'),
                                            b'Hello World!')

        self.assertEqual(folders, ['/foo/', '/foo/bar/'])

    def test_put_document_should_store_file_mirroring_path(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World!')

        local_path = os.path.join(self.temp_dir, 'documents', 'foo', 'bar',
                                  'baz')
        with open(local_path, 'rb') as f:
            self.assertEqual(f.read(), b'Hello World!')

    def test_put_document_should_accept_streams(self):
        self.storage.put_document('/foo/bar', BytesIO(b'hello'))
        self.storage.put_document('/foo/baz', BytesIO(b'hello'), size=2)

        self.assertEqual(self.storage.get_document('/foo/bar'), b'hello')
        self.assertEqual(self.storage.get_document('/foo/baz'), b'he')

    def test_put_two_documents(self):
        expected = ['/admin/', '/admin/messages/', '/admin/messages/foo/']

        self.assertEqual(
            self.storage.put_document(Path('/admin/messages/foo/baz.txt'),
                                      b'Hello Baz!'),
            expected)
        self.assertEqual(
            self.storage.put_document(Path('/admin/messages/foo/bar.txt'),
                                      b'Hello Bar!'),
            expected)
        self.assertEqual(
            self.storage.put_document(Path('/admin/messages/foo/bar.txt'),
                                      b'Hello Updated Bar!'),
            expected)
        self.assertEqual(
            self.storage.get_folder(Path('/admin/messages/foo/')),
            {'bar.txt': {'Content-Length': 18},
             'baz.txt': {'Content-Length': 10}})

    def test_put_document_on_folder_should_fail(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World')

        with self.assertRaises(ConflictError) as cm:
            self.storage.put_document('/foo/bar', b'Hello World')
        self.assertEqual(cm.exception.reason, PATH_IS_FOLDER)
        self.assertEqual(str(cm.exception), 'path is already a folder')

    def test_put_folder_on_document_should_fail(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World')

        with self.assertRaises(ConflictError) as cm:
            self.storage.put_document('/foo/bar/baz/foo', b'Hello World')
        self.assertEqual(cm.exception.reason, FILE_BLOCKS_FOLDER)
        self.assertEqual(str(cm.exception),
                         'file exists, blocks folder creation')

    def test_rejected_put_should_not_change_anything(self):
        self.storage.put_document('/foo/bar', b'Hello World')

        with self.assertRaises(ConflictError):
            self.storage.put_document('/foo/bar/baz/qux', b'Hello World')

        self.assertEqual(self.storage.get_document('/foo/bar'),
                         b'Hello World')
        self.assertEqual(os.listdir(self.storage.tmp_dir), [])

    def test_get_document(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World!')

        self.assertEqual(self.storage.get_document(Path('/foo/bar/baz')),
                         b'Hello World!')

    def test_open_document_should_return_stream(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World!')

        with self.storage.open_document('/foo/bar/baz') as f:
            self.assertEqual(f.read(), b'Hello World!')
        self.assertEqual(self.storage.document_size('/foo/bar/baz'), 12)

    def test_get_missing_document_should_fail(self):
        with self.assertRaises(NotFoundError):
            self.storage.get_document('/foo/bar/baz/foo')

    def test_get_folder_as_document_should_fail(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World!')

        with self.assertRaises(NotFoundError):
            self.storage.get_document('/foo/bar')

    def test_document_operations_should_reject_folder_paths(self):
        with self.assertRaises(PathError):
            self.storage.put_document('/foo/bar/', b'Hello World!')
        with self.assertRaises(PathError):
            self.storage.get_folder('/foo/bar')

    def test_delete_missing_document_should_fail(self):
        with self.assertRaises(NotFoundError):
            self.storage.delete_document('/foo/bar/baz/foo')

    def test_delete_document(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World!')

        self.assertEqual(self.storage.delete_document(Path('/foo/bar/baz')),
                         ['/foo/bar/baz', '/foo/bar/', '/foo/'])

    def test_double_delete_should_fail(self):
        self.storage.put_document('/foo/bar/baz', b'Hello World!')
        self.storage.delete_document('/foo/bar/baz')

        with self.assertRaises(NotFoundError):
            self.storage.delete_document('/foo/bar/baz')

    def test_delete_should_stop_at_non_empty_folder(self):
        self.storage.put_document('/foo/bar/baz/qux', b'Hello Qux!')
        self.storage.put_document('/foo/bar/other', b'Hello Other!')

        self.assertEqual(self.storage.delete_document('/foo/bar/baz/qux'),
                         ['/foo/bar/baz/qux', '/foo/bar/baz/'])
        self.assertEqual(self.storage.get_folder('/foo/bar/'),
                         {'other': {'Content-Length': 12}})

    def test_get_folder(self):
        self.assertEqual(
            self.storage.put_document('/foo/bar/baz/foo', b'Hello World!'),
            ['/foo/', '/foo/bar/', '/foo/bar/baz/'])

        self.assertEqual(self.storage.get_folder(Path('/foo/bar/baz/')),
                         {'foo': {'Content-Length': 12}})
        self.assertEqual(self.storage.get_folder(Path('/foo/bar/')),
                         {'baz/': {}})
        self.assertEqual(self.storage.get_folder(Path('/foo/')),
                         {'bar/': {}})

    def test_get_empty_folder(self):
        self.assertEqual(self.storage.get_folder(Path('/foo/bar/baz/')), {})

    def test_recursive_folder_delete(self):
        self.assertEqual(
            self.storage.put_document('/foo/bar/baz/foobar/foobaz',
                                      b'Hello World!'),
            ['/foo/', '/foo/bar/', '/foo/bar/baz/', '/foo/bar/baz/foobar/'])

        self.assertEqual(
            self.storage.delete_document('/foo/bar/baz/foobar/foobaz'),
            ['/foo/bar/baz/foobar/foobaz',
             '/foo/bar/baz/foobar/',
             '/foo/bar/baz/',
             '/foo/bar/',
             '/foo/'])
        self.assertEqual(self.storage.get_folder(Path('/foo/bar/')), {})
        self.assertEqual(self.storage.get_folder(Path('/foo/')), {})

    def test_iter_documents(self):
        self.storage.put_document('/foo/bar/baz', b'1')
        self.storage.put_document('/foo/qux', b'2')
        self.storage.put_document('/admin/x.txt', b'3')

        self.assertEqual(sorted(self.storage.iter_documents()),
                         ['/admin/x.txt', '/foo/bar/baz', '/foo/qux'])

    def test_concurrent_puts_should_share_new_folders(self):
        errors = []

        def put(i):
            try:
                self.storage.put_document(
                    '/foo/new/folder/doc{}'.format(i), b'x')
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=put, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(self.storage.get_folder('/foo/new/folder/')), 8)
