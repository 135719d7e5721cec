#!/usr/bin/env python3
"""
Unit tests for gamedb/config.py.

Run with:
    python -m pytest tests/test_config.py
"""
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gamedb.config import DEFAULT_CONFIG, load_config, setup_logging

_CLEAN_ENV = {name: '' for name in (
    'GAMEDB_STORAGE', 'GAMEDB_DATA_DIR', 'DATABASE_URL', 'GAMEDB_LOG_LEVEL',
    'GAMEDB_RECOMPUTE_FAILURE_POLICY', 'GAMEDB_SERIALIZE_RECOMPUTES',
)}


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp, 'config.json')
        patcher = patch.dict(os.environ, _CLEAN_ENV)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _write(self, data):
        with open(self.path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)

    def test_missing_file_gives_defaults(self):
        self.assertEqual(load_config(self.path), DEFAULT_CONFIG)

    def test_none_path_gives_defaults(self):
        self.assertEqual(load_config(None), DEFAULT_CONFIG)

    def test_file_values_merge(self):
        self._write({'storage': 'database', 'serialize_recomputes': True})
        config = load_config(self.path)
        self.assertEqual(config['storage'], 'database')
        self.assertTrue(config['serialize_recomputes'])
        self.assertEqual(config['recompute_failure_policy'], 'log')

    def test_env_overrides_file(self):
        self._write({'recompute_failure_policy': 'log'})
        with patch.dict(os.environ, {'GAMEDB_RECOMPUTE_FAILURE_POLICY': 'RAISE',
                                     'GAMEDB_SERIALIZE_RECOMPUTES': 'yes',
                                     'DATABASE_URL': 'sqlite://'}):
            config = load_config(self.path)
        self.assertEqual(config['recompute_failure_policy'], 'raise')
        self.assertTrue(config['serialize_recomputes'])
        self.assertEqual(config['database_url'], 'sqlite://')

    def test_corrupt_file_ignored(self):
        self._write('{not json')
        self.assertEqual(load_config(self.path), DEFAULT_CONFIG)

    def test_invalid_policy(self):
        self._write({'recompute_failure_policy': 'retry'})
        with self.assertRaises(ValueError):
            load_config(self.path)

    def test_invalid_storage(self):
        self._write({'storage': 'redis'})
        with self.assertRaises(ValueError):
            load_config(self.path)


class TestSetupLogging(unittest.TestCase):

    def test_sets_level_and_single_handler(self):
        logger = setup_logging('debug')
        setup_logging('info')
        self.assertEqual(logger.name, 'gamedb')
        self.assertEqual(logger.level, logging.INFO)
        self.assertEqual(len(logger.handlers), 1)

    def test_unknown_level_falls_back_to_warning(self):
        self.assertEqual(setup_logging('chatty').level, logging.WARNING)


if __name__ == '__main__':
    unittest.main()
