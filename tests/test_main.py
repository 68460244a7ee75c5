#!/usr/bin/env python3
"""
Unit tests for the command line interface.
"""

import io
import json
import os
import sys
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import MagicMock, patch

# Add parent directory to path to import ldap_query modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from directory_fixtures import BASE_DN, FakeConnection, make_entry
from ldap_query import DirectoryClient
from ldap_query.config import ConfigurationError
from ldap_query.exceptions import EntryNotFoundError, LDAPConnectionError
from ldap_query.main import build_parser, main, run_command, to_json
from ldap_query.models import User

BOB = make_entry(f'CN=Bob,OU=Staff,{BASE_DN}', 'Person', cn='Bob', samaccountname='bob')
ALICE = make_entry(f'CN=Alice,OU=Staff,{BASE_DN}', 'Person', cn='Alice', samaccountname='alice')


class TestRunCommand(unittest.TestCase):
    """Test cases for translating arguments into searches."""

    def setUp(self):
        self.parser = build_parser()
        self.connection = FakeConnection(entries=[BOB, ALICE])
        config = {'ldap': {'server_url': 'ldap://dc1.example.com', 'base_dn': BASE_DN}}
        self.client = DirectoryClient(config, connection=self.connection)

    def run_args(self, *argv):
        return run_command(self.client, self.parser.parse_args(list(argv)))

    def test_search_predicates(self):
        """Test search options become filter predicates."""
        self.run_args('search', '-e', 'objectcategory=person', '--starts-with', 'cn=B',
                      '--contains', 'mail=example', '--ends-with', 'sn=th', '--has', 'mail')
        method, dn, search_filter, _ = self.connection.calls[-1]
        self.assertEqual(method, 'search')
        self.assertEqual(dn, BASE_DN)
        self.assertEqual(search_filter,
                         '(&(objectcategory=person)(mail=*example*)(cn=B*)(sn=*th)(mail=*))')

    def test_search_listing_and_dn(self):
        """Test --listing and --dn select scope and base."""
        self.run_args('search', '--listing', '--dn', f'OU=Staff,{BASE_DN}')
        method, dn, search_filter, _ = self.connection.calls[-1]
        self.assertEqual((method, dn, search_filter), ('listing', f'OU=Staff,{BASE_DN}', '(objectClass=*)'))

    def test_search_sorted(self):
        """Test --sort orders results."""
        results = self.run_args('search', '--sort', 'samaccountname')
        self.assertEqual([entry.account_name for entry in results], ['alice', 'bob'])

    def test_search_paged(self):
        """Test --page-size returns every entry across pages."""
        results = self.run_args('search', '--page-size', '1')
        self.assertEqual(len(results), 2)
        self.assertEqual(len(self.connection.paging_requests), 2)

    def test_search_paged_and_sorted(self):
        """Test --sort still applies when --page-size is given."""
        results = self.run_args('search', '--page-size', '1', '--sort', 'samaccountname')
        self.assertEqual([entry.account_name for entry in results], ['alice', 'bob'])
        self.assertEqual(len(self.connection.paging_requests), 2)

    def test_invalid_pair(self):
        """Test malformed FIELD=VALUE arguments raise ValueError."""
        with self.assertRaises(ValueError):
            self.run_args('search', '-e', 'objectcategory')

    def test_find(self):
        """Test find returns the first match."""
        entry = self.run_args('find', 'bob', '-s', 'cn')
        self.assertIsInstance(entry, User)
        self.assertEqual(self.connection.calls[-1][2], '(anr=bob)')
        self.assertEqual(self.connection.calls[-1][3], ['cn', 'objectcategory', 'objectclass'])

    def test_find_missing(self):
        """Test find raises when nothing matches."""
        self.connection.entries = []
        with self.assertRaises(EntryNotFoundError):
            self.run_args('find', 'nobody')

    def test_base_dn(self):
        """Test base-dn prints the configured base DN."""
        self.assertEqual(self.run_args('base-dn'), BASE_DN)


class TestToJson(unittest.TestCase):
    """Test cases for JSON conversion."""

    def test_entries_and_bytes(self):
        """Test entries become dicts and binary values hex strings."""
        entry = User({'dn': 'CN=x', 'objectsid': [b'\x01\x02']})
        self.assertEqual(to_json([entry]), [{'dn': 'CN=x', 'objectsid': ['0102']}])
        self.assertEqual(to_json(('a', 1)), ['a', 1])


class TestMain(unittest.TestCase):
    """Test cases for the main entry point."""

    def setUp(self):
        self.config = {
            'ldap': {'server_url': 'ldap://dc1.example.com', 'base_dn': BASE_DN},
            'logging': {'log_dir': None, 'console_output': False},
        }

    def run_main(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    @patch('ldap_query.main.setup_logging')
    @patch('ldap_query.main.DirectoryClient')
    @patch('ldap_query.main.load_config')
    def test_success_prints_json(self, mock_load_config, mock_client_class, mock_setup_logging):
        """Test results are printed as JSON with exit code 0."""
        mock_load_config.return_value = self.config
        client = DirectoryClient(self.config, connection=FakeConnection(entries=[BOB]))
        mock_client_class.return_value = client

        code, stdout, _ = self.run_main(['-c', 'config.yaml', 'search', '-e', 'cn=Bob'])

        self.assertEqual(code, 0)
        mock_load_config.assert_called_once_with('config.yaml')
        mock_setup_logging.assert_called_once_with(self.config['logging'])
        self.assertEqual(json.loads(stdout)[0]['samaccountname'], ['bob'])
        self.assertFalse(client.connection.is_bound())

    @patch('ldap_query.main.load_config')
    def test_configuration_error(self, mock_load_config):
        """Test configuration errors exit with code 2."""
        mock_load_config.side_effect = ConfigurationError('missing ldap')
        code, _, stderr = self.run_main(['base-dn'])
        self.assertEqual(code, 2)
        self.assertIn('missing ldap', stderr)

    @patch('ldap_query.main.setup_logging')
    @patch('ldap_query.main.DirectoryClient')
    @patch('ldap_query.main.load_config')
    def test_connection_error(self, mock_load_config, mock_client_class, _):
        """Test connection failures exit with code 1."""
        mock_load_config.return_value = self.config
        client = MagicMock()
        client.__enter__.return_value = client
        client.__exit__.return_value = False
        client.connect.side_effect = LDAPConnectionError('bind failed')
        mock_client_class.return_value = client

        code, _, stderr = self.run_main(['base-dn'])
        self.assertEqual(code, 1)
        self.assertIn('bind failed', stderr)

    @patch('ldap_query.main.setup_logging')
    @patch('ldap_query.main.DirectoryClient')
    @patch('ldap_query.main.load_config')
    def test_not_found_and_failed_search(self, mock_load_config, mock_client_class, _):
        """Test missing entries and failed searches exit with code 1."""
        mock_load_config.return_value = self.config

        mock_client_class.return_value = DirectoryClient(self.config, connection=FakeConnection())
        code, _, stderr = self.run_main(['find', 'nobody'])
        self.assertEqual(code, 1)
        self.assertIn('nobody', stderr)

        mock_client_class.return_value = DirectoryClient(self.config, connection=FakeConnection(fail=True))
        code, stdout, stderr = self.run_main(['search', '-e', 'cn=Bob'])
        self.assertEqual(code, 1)
        self.assertEqual(stdout, '')
        self.assertIn('no result', stderr)


if __name__ == '__main__':
    unittest.main()
