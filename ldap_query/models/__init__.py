"""
Directory entry models.
"""

from ldap_query.models.entry import Entry
from ldap_query.models.objects import Computer, Container, ExchangeServer, Group, Printer, User
from ldap_query.models.paginator import Paginator

__all__ = ['Computer', 'Container', 'Entry', 'ExchangeServer', 'Group', 'Paginator', 'Printer', 'User']
