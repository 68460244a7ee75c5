"""
ldap_query - Query Active Directory over LDAP with a fluent filter builder.

Filters are assembled with Search/Builder, executed through an ldap3 backed
connection and returned as typed entry models.
"""

from ldap_query.client import DirectoryClient
from ldap_query.exceptions import (
    EntryNotFoundError,
    InvalidOperatorError,
    LDAPConnectionError,
    LDAPQueryError,
    ValidationError,
)
from ldap_query.search import Search

__version__ = "1.0.0"
__author__ = "LDAP Query Team"

__all__ = [
    'DirectoryClient',
    'EntryNotFoundError',
    'InvalidOperatorError',
    'LDAPConnectionError',
    'LDAPQueryError',
    'Search',
    'ValidationError',
]
