"""
User lookups.
"""

import logging
from typing import Iterable, List, Optional

from ldap_query import schema
from ldap_query.models import Entry

logger = logging.getLogger(__name__)


class Users:
    """User queries used directly and by group management."""

    def __init__(self, client):
        self.client = client
        self.connection = client.connection

    def find(self, username: str, fields: Optional[Iterable[str]] = None) -> Optional[Entry]:
        """Find a user by ambiguous name resolution (account name, display name, mail...)."""
        return (self.client.search()
                .select(fields)
                .where(schema.OBJECT_CATEGORY, '=', schema.OBJECT_CATEGORY_PERSON)
                .where(schema.ANR, '=', username)
                .first())

    def info(self, username: str, fields: Optional[Iterable[str]] = None) -> Optional[Entry]:
        return self.find(username, fields)

    def dn(self, username: str) -> Optional[str]:
        user = self.find(username)
        return user.dn if user is not None else None

    def all(self, fields: Optional[Iterable[str]] = None, sorted: bool = True) -> Optional[List[Entry]]:
        search = (self.client.search()
                  .select(fields)
                  .where(schema.OBJECT_CATEGORY, '=', schema.OBJECT_CATEGORY_PERSON)
                  .where(schema.OBJECT_CLASS, '=', schema.OBJECT_CLASS_USER))
        if sorted:
            search.sort_by(schema.SAM_ACCOUNT_NAME, 'asc')
        return search.get()

    def groups(self, username: str, recursive: Optional[bool] = None) -> Optional[List[str]]:
        """
        Return the DNs of the groups a user belongs to.

        With ``recursive`` (default taken from the client), groups those
        groups belong to are included as well.
        """
        if recursive is None:
            recursive = self.client.recursive_groups

        user = self.find(username, [schema.MEMBER_OF])
        if user is None:
            return None

        direct = list(user.get_attribute(schema.MEMBER_OF) or [])
        if not recursive:
            return direct

        groups = self.client.groups()
        result: List[str] = []
        seen = set()
        for group_dn in direct:
            for dn in groups.parent_groups(group_dn, seen):
                result.append(dn)
        return result
