"""
LDAP filter construction.
"""

from ldap_query.query.operator import Boolean, Operator
from ldap_query.query.builder import Builder, Predicate, QueryState, SearchMode

__all__ = ['Boolean', 'Builder', 'Operator', 'Predicate', 'QueryState', 'SearchMode']
