#!/usr/bin/env python3
"""
Unit tests for logging configuration and credential masking.
"""

import os
import sys
import shutil
import logging
import logging.handlers
import tempfile
import unittest

# Add the project directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ldap_query import logging_setup
from ldap_query.logging_setup import LoggingManager, SensitiveDataFilter


def make_record(msg, *args):
    return logging.LogRecord('ldap_query.test', logging.INFO, __file__, 1, msg, args, None)


class TestSensitiveDataFilter(unittest.TestCase):
    """Test cases for masking credentials."""

    def setUp(self):
        self.filter = SensitiveDataFilter()

    def apply(self, msg, *args):
        record = make_record(msg, *args)
        self.assertTrue(self.filter.filter(record))
        return record.getMessage()

    def test_key_value_pairs(self):
        """Test key=value credentials are masked."""
        cases = [
            ('bind_password=secret123', 'bind_password=****'),
            ('password = hunter2, user=bob', 'password = ****, user=bob'),
            ('unicodePwd=xyz', 'unicodePwd=****'),
        ]
        for message, expected in cases:
            with self.subTest(message=message):
                self.assertEqual(self.apply(message), expected)

    def test_quoted_pairs(self):
        """Test dict-style credentials are masked."""
        self.assertEqual(self.apply('{"bind_password": "topsecret"}'), '{"bind_password": "****"}')
        self.assertEqual(self.apply("{'password': 'test123', 'cn': 'bob'}"),
                         "{'password': '****', 'cn': 'bob'}")

    def test_arguments_are_merged_before_masking(self):
        """Test credentials passed as %-style arguments are masked."""
        self.assertEqual(self.apply('connecting with password=%s', 'hunter2'), 'connecting with password=****')

    def test_plain_messages_unchanged(self):
        """Test messages without credentials pass through."""
        message = 'Searching DC=example,DC=com filter=(cn=bob)'
        self.assertEqual(self.apply(message), message)


class TestLoggingManager(unittest.TestCase):
    """Test cases for LoggingManager."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.root_logger = logging.getLogger()
        self.saved_handlers = list(self.root_logger.handlers)
        self.saved_level = self.root_logger.level

    def tearDown(self):
        for handler in self.root_logger.handlers:
            handler.close()
        self.root_logger.handlers[:] = self.saved_handlers
        self.root_logger.setLevel(self.saved_level)
        logging_setup._logging_manager.reset()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_file_and_console_handlers(self):
        """Test a daily rotating file handler and a console handler are installed."""
        log_dir = os.path.join(self.temp_dir, 'logs')
        LoggingManager().setup_logging({
            'level': 'DEBUG',
            'log_dir': log_dir,
            'rotation': 'daily',
            'retention_days': 3,
            'console_level': 'ERROR',
        })

        self.assertEqual(self.root_logger.level, logging.DEBUG)
        file_handlers = [h for h in self.root_logger.handlers
                         if isinstance(h, logging.handlers.TimedRotatingFileHandler)]
        self.assertEqual(len(file_handlers), 1)
        self.assertEqual(file_handlers[0].backupCount, 3)
        self.assertTrue(os.path.exists(os.path.join(log_dir, 'ldap_query.log')))

        console_handlers = [h for h in self.root_logger.handlers if type(h) is logging.StreamHandler]
        self.assertEqual(len(console_handlers), 1)
        self.assertEqual(console_handlers[0].level, logging.ERROR)

        for handler in self.root_logger.handlers:
            self.assertTrue(any(isinstance(f, SensitiveDataFilter) for f in handler.filters))

    def test_plain_file_handler_without_rotation(self):
        """Test rotation 'none' uses a plain FileHandler."""
        LoggingManager().setup_logging({'log_dir': self.temp_dir, 'rotation': 'none', 'console_output': False})

        self.assertEqual(len(self.root_logger.handlers), 1)
        handler = self.root_logger.handlers[0]
        self.assertIs(type(handler), logging.FileHandler)

    def test_credentials_masked_in_file(self):
        """Test credentials never reach the log file."""
        LoggingManager().setup_logging({'log_dir': self.temp_dir, 'rotation': 'none', 'console_output': False})
        logging.getLogger('ldap_query.test').info('bind_password=%s', 'hunter2')
        for handler in self.root_logger.handlers:
            handler.flush()

        with open(os.path.join(self.temp_dir, 'ldap_query.log'), encoding='utf-8') as f:
            content = f.read()
        self.assertIn('bind_password=****', content)
        self.assertNotIn('hunter2', content)

    def test_configures_once(self):
        """Test a second call is ignored until reset."""
        manager = LoggingManager()
        manager.setup_logging({'log_dir': self.temp_dir, 'console_output': False})
        handlers = list(self.root_logger.handlers)

        manager.setup_logging({'log_dir': None, 'console_output': True})
        self.assertEqual(self.root_logger.handlers, handlers)

        manager.reset()
        manager.setup_logging({'log_dir': None, 'console_output': True})
        self.assertEqual(len(self.root_logger.handlers), 1)

    def test_module_level_setup(self):
        """Test setup_logging() uses the shared manager."""
        logging_setup.setup_logging({'log_dir': None, 'console_output': False, 'level': 'warning'})
        self.assertTrue(logging_setup._logging_manager.configured)
        self.assertEqual(self.root_logger.level, logging.WARNING)


if __name__ == '__main__':
    unittest.main()
