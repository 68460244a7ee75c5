"""
Typed directory entries selected by object category.
"""

from typing import List, Optional

from ldap_query import schema
from ldap_query.models.entry import Entry


class User(Entry):
    """A person account."""

    @property
    def account_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.SAM_ACCOUNT_NAME)

    @property
    def display_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.DISPLAY_NAME)

    @property
    def email(self) -> Optional[str]:
        return self.get_first_attribute(schema.EMAIL)

    @property
    def user_principal_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.USER_PRINCIPAL_NAME)

    @property
    def member_of(self) -> List[str]:
        return list(self.get_attribute(schema.MEMBER_OF) or [])


class Group(Entry):
    """A security or distribution group."""

    @property
    def account_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.SAM_ACCOUNT_NAME)

    @property
    def members(self) -> List[str]:
        return list(self.get_attribute(schema.MEMBER) or [])

    @property
    def member_of(self) -> List[str]:
        return list(self.get_attribute(schema.MEMBER_OF) or [])

    @property
    def group_type(self) -> Optional[int]:
        value = self.get_first_attribute(schema.GROUP_TYPE)
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None


class Computer(Entry):
    """A computer account."""

    @property
    def operating_system(self) -> Optional[str]:
        return self.get_first_attribute(schema.OPERATING_SYSTEM)

    @property
    def dns_host_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.DNS_HOST_NAME)


class Printer(Entry):
    """A published print queue."""

    @property
    def printer_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.PRINTER_NAME)

    @property
    def port_name(self) -> Optional[str]:
        return self.get_first_attribute(schema.PORT_NAME)

    @property
    def location(self) -> Optional[str]:
        return self.get_first_attribute(schema.LOCATION)


class Container(Entry):
    """A container such as ``CN=Users``."""
    pass


class ExchangeServer(Entry):
    """An Exchange server object."""

    @property
    def serial_number(self) -> Optional[str]:
        return self.get_first_attribute(schema.SERIAL_NUMBER)
