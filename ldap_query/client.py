"""
Entry point tying configuration, connection and the query classes together.
"""

import logging
from typing import Any, Dict, Optional

from ldap_query.connection import LDAPConnection
from ldap_query.groups import Groups
from ldap_query.search import Search
from ldap_query.users import Users

logger = logging.getLogger(__name__)


class DirectoryClient:
    """
    Active Directory client.

    Example:
        with DirectoryClient(load_config()) as ad:
            ad.connect()
            user = ad.search().find_or_fail('jdoe')
            ad.groups().add_user('Sales', 'jdoe')
    """

    def __init__(self, config: Dict[str, Any], connection=None):
        """
        Initialize client.

        Args:
            config: Loaded configuration (see ldap_query.config)
            connection: Connection to use instead of building an LDAPConnection
        """
        self.config = config
        ldap_config = dict(config.get('ldap', {}))
        ldap_config.setdefault('error_handling', config.get('error_handling', {}))

        self.base_dn = ldap_config.get('base_dn', '')
        self.recursive_groups = ldap_config.get('recursive_groups', True)
        self.page_size = ldap_config.get('page_size', 1000)
        self.connection = connection if connection is not None else LDAPConnection(ldap_config)
        self._discovered_base_dn: Optional[str] = None

    def connect(self) -> bool:
        return self.connection.connect()

    def disconnect(self) -> None:
        self.connection.disconnect()

    def search(self) -> Search:
        """Start a new search bound to this client's connection and base DN."""
        return Search(self.connection, base_dn=self.base_dn, base_dn_resolver=self.get_base_dn)

    def groups(self) -> Groups:
        return Groups(self)

    def users(self) -> Users:
        return Users(self)

    def get_base_dn(self) -> Optional[str]:
        """
        Return the configured base DN, discovering it from the root DSE once
        if none is configured.
        """
        if self.base_dn:
            return self.base_dn

        if self._discovered_base_dn is None:
            self._discovered_base_dn = Search(self.connection).find_base_dn()
            if self._discovered_base_dn:
                logger.info(f"Discovered base DN {self._discovered_base_dn}")
        return self._discovered_base_dn

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
