"""Tests for .config module."""

import logging
import os
import shutil
import tempfile
import unittest
from unittest import mock

from remotestorage import config


class OpenStorageTest(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_should_create_storage_layout(self):
        storage = config.open_storage(self.temp_dir)
        storage.put_document('/admin/foo.txt', 'text/plain', b'hello')
        storage.metadata.engine.dispose()

        for name in ['documents', 'tmp', 'locks', 'db']:
            self.assertTrue(os.path.isdir(os.path.join(self.temp_dir, name)),
                            name)
        self.assertTrue(os.path.isfile(
            os.path.join(self.temp_dir, 'db', 'metadata.sqlite')))

    def test_should_read_directory_from_environment(self):
        with mock.patch.dict(os.environ,
                             {config.DIR_ENV: self.temp_dir,
                              config.DB_URL_ENV: 'sqlite://'}):
            storage = config.open_storage()

        self.assertEqual(storage.documents.base_dir,
                         os.path.abspath(self.temp_dir))
        self.assertEqual(str(storage.metadata.engine.url), 'sqlite://')
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, 'db')))

    def test_should_require_directory(self):
        with mock.patch.dict(os.environ, clear=True):
            with self.assertRaises(AssertionError):
                config.open_storage()

    def test_versions_should_survive_reopening(self):
        storage = config.open_storage(self.temp_dir)
        version = storage.put_document('/admin/foo.txt', 'text/plain', b'x')
        storage.metadata.engine.dispose()

        storage = config.open_storage(self.temp_dir)
        self.assertEqual(storage.get_version('/admin/foo.txt'), version)
        storage.metadata.engine.dispose()


class ConfigureLoggingTest(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.root_handlers = logging.getLogger().handlers[:]
        self.root_level = logging.getLogger().level

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if handler not in self.root_handlers:
                root.removeHandler(handler)
                handler.close()
        for handler in self.root_handlers:
            if handler not in root.handlers:
                root.addHandler(handler)
        root.setLevel(self.root_level)
        shutil.rmtree(self.temp_dir)

    def test_should_log_to_file(self):
        log_path = os.path.join(self.temp_dir, 'remotestorage.log')

        config.configure_logging(log=log_path)
        logging.getLogger('remotestorage.test').info('hello log')
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(log_path) as f:
            self.assertIn('hello log', f.read())

    def test_should_not_modify_default_config(self):
        config.configure_logging(log=os.path.join(self.temp_dir, 'a.log'),
                                 level='DEBUG')

        self.assertEqual(
            config._DEFAULT_LOG_CONFIG['handlers']['default']['class'],
            'logging.StreamHandler')
        self.assertEqual(config._DEFAULT_LOG_CONFIG['loggers']['']['level'],
                         'INFO')
