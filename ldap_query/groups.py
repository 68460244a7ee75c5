"""
Group management.

Thin wrappers over the connection's add/modify/rename/delete primitives plus
membership queries. Mutations return the connection's boolean result as-is;
when a group or member cannot be resolved to a DN they return False without
touching the directory.

Nested membership is walked with an explicit set of visited DNs, so cyclic
group memberships terminate.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Union

from ldap3.utils.dn import escape_rdn

from ldap_query import schema
from ldap_query.models import Entry
from ldap_query.utils import (
    build_dn,
    container_dn,
    replace_rid,
    sid_to_string,
    validate_not_null,
    validate_required,
)

logger = logging.getLogger(__name__)

REQUIRED_CREATE_ATTRIBUTES = ['group_name', 'description', 'container']

# Attributes needed to walk membership
MEMBERSHIP_FIELDS = [schema.SAM_ACCOUNT_NAME, schema.DISTINGUISHED_NAME, schema.MEMBER, schema.MEMBER_OF]


class Groups:
    """Group queries and membership management."""

    def __init__(self, client):
        self.client = client
        self.connection = client.connection

    def all(self, fields: Optional[Iterable[str]] = None, sorted: bool = True) -> Optional[List[Entry]]:
        """Return every group regardless of type."""
        return self.search(None, fields, sorted)

    def all_security(self, fields: Optional[Iterable[str]] = None, sorted: bool = True) -> Optional[List[Entry]]:
        return self.search(schema.SECURITY_GLOBAL_GROUP, fields, sorted)

    def all_distribution(self, fields: Optional[Iterable[str]] = None, sorted: bool = True) -> Optional[List[Entry]]:
        return self.search(schema.DISTRIBUTION_GROUP, fields, sorted)

    def search(self, sam_account_type: Optional[int] = schema.SECURITY_GLOBAL_GROUP,
               select: Optional[Iterable[str]] = None, sorted: bool = True) -> Optional[List[Entry]]:
        """
        List groups, optionally restricted to one sAMAccountType.

        Raises:
            LDAPConnectionError: If the connection is not bound
        """
        self.connection.validate_bound()

        search = (self.client.search()
                  .select(select)
                  .where(schema.OBJECT_CATEGORY, '=', schema.OBJECT_CATEGORY_GROUP))

        if sam_account_type is not None:
            search.where(schema.SAM_ACCOUNT_TYPE, '=', sam_account_type)

        if sorted:
            search.sort_by(schema.SAM_ACCOUNT_NAME, 'asc')

        return search.get()

    def find(self, group_name: str, fields: Optional[Iterable[str]] = None) -> Optional[Entry]:
        return (self.client.search()
                .select(fields)
                .where(schema.OBJECT_CATEGORY, '=', schema.OBJECT_CATEGORY_GROUP)
                .where(schema.ANR, '=', group_name)
                .first())

    def info(self, group_name: str, fields: Optional[Iterable[str]] = None) -> Optional[Entry]:
        return self.find(group_name, fields)

    def dn(self, group_name: str) -> Optional[str]:
        group = self.find(group_name)
        return group.dn if group is not None else None

    def add_group(self, parent: str, child: str) -> bool:
        """Make group ``child`` a member of group ``parent``."""
        parent_dn = self.dn(parent)
        child_dn = self.dn(child)
        if parent_dn and child_dn:
            return self.connection.mod_add(parent_dn, {schema.MEMBER: child_dn})
        return False

    def add_user(self, group_name: str, username: str) -> bool:
        group_dn = self.dn(group_name)
        user_dn = self.client.users().dn(username)
        if group_dn and user_dn:
            return self.connection.mod_add(group_dn, {schema.MEMBER: user_dn})
        return False

    def add_contact(self, group_name: str, contact_dn: str) -> bool:
        group_dn = self.dn(group_name)
        if group_dn and contact_dn:
            return self.connection.mod_add(group_dn, {schema.MEMBER: contact_dn})
        return False

    def create(self, attributes: Dict[str, Any]) -> bool:
        """
        Create a group.

        Args:
            attributes: ``group_name``, ``description`` and ``container`` (list of
                OU names, outermost first, or a single OU name)

        Raises:
            ValidationError: If a required attribute is missing
        """
        validate_required(attributes, REQUIRED_CREATE_ATTRIBUTES)

        name = attributes['group_name']
        container = attributes['container']
        if isinstance(container, str):
            container = [container]

        entry = {
            schema.COMMON_NAME: name,
            schema.SAM_ACCOUNT_NAME: name,
            'objectClass': 'group',
            schema.DESCRIPTION: attributes['description'],
        }
        dn = build_dn('CN', name, container_dn(container), self.client.get_base_dn())

        logger.info(f"Creating group {dn}")
        return self.connection.add(dn, entry)

    def delete(self, group_name: str) -> bool:
        """
        Delete a group.

        Raises:
            ValidationError: If no group name is given
            LDAPConnectionError: If the connection is not bound
        """
        validate_not_null('Group', group_name)
        self.connection.validate_bound()

        group = self.find(group_name)
        if group is None or not group.dn:
            logger.warning(f"Cannot delete unknown group {group_name!r}")
            return False

        return self.connection.delete(group.dn)

    def rename(self, group_name: str, new_name: str, container: Union[List[str], str]) -> bool:
        """Rename a group and move it into ``container`` (OU names, outermost first)."""
        group = self.find(group_name)
        if group is None or not group.dn:
            return False

        if isinstance(container, str):
            container = [container]

        new_rdn = f"CN={escape_rdn(new_name)}"
        new_parent = ','.join(part for part in (container_dn(container), self.client.get_base_dn()) if part)

        return self.connection.rename(group.dn, new_rdn, new_parent, True)

    def remove_group(self, parent: str, child: str) -> bool:
        parent_dn = self.dn(parent)
        child_dn = self.dn(child)
        if parent_dn and child_dn:
            return self.connection.mod_delete(parent_dn, {schema.MEMBER: child_dn})
        return False

    def remove_user(self, group_name: str, username: str) -> bool:
        group_dn = self.dn(group_name)
        user_dn = self.client.users().dn(username)
        if group_dn and user_dn:
            return self.connection.mod_delete(group_dn, {schema.MEMBER: user_dn})
        return False

    def remove_contact(self, group_name: str, contact_dn: str) -> bool:
        group_dn = self.dn(group_name)
        if group_dn and contact_dn:
            return self.connection.mod_delete(group_dn, {schema.MEMBER: contact_dn})
        return False

    def in_group(self, group_name: str, recursive: Optional[bool] = None) -> Optional[List[str]]:
        """
        Return the DNs of groups that are members of a group.

        Args:
            group_name: Group to inspect
            recursive: Include groups nested further down; defaults to the
                client's ``recursive_groups`` setting

        Returns:
            Group DNs in discovery order without duplicates, or None if the
            group does not exist

        Raises:
            LDAPConnectionError: If the connection is not bound
        """
        self.connection.validate_bound()

        if recursive is None:
            recursive = self.client.recursive_groups

        group = self.find(group_name, MEMBERSHIP_FIELDS)
        if group is None:
            return None

        visited = {group.dn.lower()} if group.dn else set()
        return self._nested_groups(group, recursive, visited)

    def _nested_groups(self, group: Entry, recursive: bool, visited: Set[str]) -> List[str]:
        found = []
        for member_dn in group.get_attribute(schema.MEMBER) or []:
            if member_dn.lower() in visited:
                continue

            member = self._find_group_by_dn(member_dn)
            if member is None:
                continue

            visited.add(member_dn.lower())
            found.append(member.dn or member_dn)
            if recursive:
                found.extend(self._nested_groups(member, recursive, visited))
        return found

    def _find_group_by_dn(self, dn: str) -> Optional[Entry]:
        return (self.client.search()
                .select(MEMBERSHIP_FIELDS)
                .where(schema.OBJECT_CATEGORY, '=', schema.OBJECT_CATEGORY_GROUP)
                .where(schema.DISTINGUISHED_NAME, '=', dn)
                .first())

    def members(self, group_name: str, fields: Optional[Iterable[str]] = None) -> Optional[List[Entry]]:
        """
        Return the user entries that are direct members of a group.

        Returns:
            Member entries, or None if the group does not exist
        """
        group = self.find(group_name, [schema.MEMBER])
        if group is None:
            return None

        members = []
        for member_dn in group.get_attribute(schema.MEMBER) or []:
            member = (self.client.search()
                      .set_dn(member_dn)
                      .read()
                      .select(fields)
                      .where(schema.OBJECT_CLASS, '=', schema.OBJECT_CLASS_USER)
                      .where(schema.OBJECT_CLASS, '=', schema.OBJECT_CLASS_PERSON)
                      .first())
            if member is not None:
                members.append(member)
        return members

    def recursive_groups(self, group_name: str) -> List[str]:
        """
        Return the group's DN followed by every group it belongs to, directly
        or through other groups.
        """
        group = self.find(group_name, MEMBERSHIP_FIELDS)
        if group is None or not group.dn:
            return []
        return list(self.parent_groups(group.dn))

    def parent_groups(self, group_dn: str, seen: Optional[Set[str]] = None) -> Iterator[str]:
        """
        Yield ``group_dn`` and the DNs of all groups above it via memberOf.

        DNs already in ``seen`` are skipped; ``seen`` is updated in place so
        it can be shared across several starting groups.
        """
        seen = set() if seen is None else seen
        pending = [group_dn]

        while pending:
            dn = pending.pop(0)
            if dn.lower() in seen:
                continue
            seen.add(dn.lower())
            yield dn

            group = self._find_group_by_dn(dn)
            if group is not None:
                pending.extend(group.get_attribute(schema.MEMBER_OF) or [])

    def get_primary_group(self, group_id: int, user_sid: Union[bytes, str]) -> Optional[str]:
        """
        Resolve a user's primary group DN.

        Active Directory does not list the primary group in memberOf; its SID
        is the user's SID with the relative identifier replaced by
        ``primaryGroupID``.

        Raises:
            ValidationError: If either argument is missing
        """
        validate_not_null('Group ID', group_id)
        validate_not_null('User ID', user_sid)

        sid = sid_to_string(replace_rid(user_sid, int(group_id)))
        group = self.client.search().where(schema.OBJECT_SID, '=', sid).first()
        if group is None:
            return None
        return group.dn
