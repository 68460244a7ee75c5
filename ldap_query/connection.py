"""
LDAP connection used by the query layer.

This module wraps an ldap3 connection behind the small set of primitives the
search and management classes rely on: base/subtree/one-level searches,
entry extraction, simple paged results and add/modify/rename/delete.
Searches never raise for directory errors; they log and return None so that
callers can tell a failed call apart from an empty result.
"""

import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ldap3 import ALL, ALL_ATTRIBUTES, BASE, LEVEL, MODIFY_ADD, MODIFY_DELETE, SUBTREE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPBindError, LDAPException, LDAPSocketOpenError

from ldap_query import schema
from ldap_query.exceptions import LDAPConnectionError
from ldap_query.retry import CONNECT_ERRORS, MaxRetriesExceeded, create_retry_callback, retry_call
from ldap_query.utils import explode_dn

logger = logging.getLogger(__name__)

# Result codes that still carry usable entries
SUCCESS_CODES = (0, 4)


@dataclass
class SearchResult:
    """Handle returned by read, search and listing."""

    entries: List[Dict[str, Any]] = field(default_factory=list)
    controls: Dict[str, Any] = field(default_factory=dict)
    result: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PagedControl:
    """Paging request applied to the next search."""

    size: int
    criticality: bool
    cookie: Optional[bytes] = None


class LDAPConnection:
    """
    Directory connection backed by ldap3.

    Can be used as a context manager; the connection is unbound on exit.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize connection settings.

        Args:
            config: The ``ldap`` section of the configuration
        """
        self.config = config
        self.server_url = config['server_url']
        self.bind_dn = config.get('bind_dn')
        self.bind_password = config.get('bind_password')

        # SSL/TLS configuration
        self.use_ssl = config.get('use_ssl', self.server_url.lower().startswith('ldaps://'))
        self.start_tls = config.get('start_tls', False)
        self.verify_ssl = config.get('verify_ssl', True)
        self.ca_cert_file = config.get('ca_cert_file')

        self.connection_timeout = config.get('connection_timeout', 10)
        self.receive_timeout = config.get('receive_timeout', 10)

        error_config = config.get('error_handling', {})
        self.max_retries = error_config.get('max_retries', 3)
        self.retry_wait = error_config.get('retry_wait_seconds', 5)

        self.server = None
        self.connection = None
        self._paged_control: Optional[PagedControl] = None

    def connect(self) -> bool:
        """
        Open and bind the connection, retrying socket and bind failures.

        Returns:
            True if the connection is bound

        Raises:
            LDAPConnectionError: If the connection cannot be established
        """
        try:
            self.server = Server(
                self.server_url,
                use_ssl=self.use_ssl,
                tls=self._create_tls_config(),
                get_info=ALL,
                connect_timeout=self.connection_timeout
            )
        except LDAPException as e:
            raise LDAPConnectionError(f"Failed to create LDAP server: {e}")

        try:
            retry_call(
                self._open_and_bind,
                max_attempts=max(1, self.max_retries),
                delay=self.retry_wait,
                exceptions=CONNECT_ERRORS,
                on_retry=create_retry_callback(f"Bind to {self.server_url}")
            )
        except MaxRetriesExceeded as e:
            raise LDAPConnectionError(
                f"Failed to connect to LDAP after {e.attempts} attempts: {e.last_exception}"
            )
        except LDAPException as e:
            self._drop_connection()
            raise LDAPConnectionError(f"Failed to connect to LDAP: {e}")

        logger.info(f"Connected and bound to LDAP server {self.server_url}")
        return True

    def _open_and_bind(self) -> None:
        self.connection = Connection(
            self.server,
            user=self.bind_dn,
            password=self.bind_password,
            auto_bind=False,
            receive_timeout=self.receive_timeout
        )

        try:
            if not self.connection.open():
                raise LDAPSocketOpenError(f"Failed to open connection: {self.connection.result}")

            if self.start_tls and not self.use_ssl:
                if not self.connection.start_tls():
                    raise LDAPException(f"Failed to start TLS: {self.connection.result}")
                logger.debug("StartTLS negotiation successful")

            if not self.connection.bind():
                raise LDAPBindError(f"Bind failed: {self.connection.result}")
        except LDAPException:
            self._drop_connection()
            raise

    def _create_tls_config(self) -> Optional[Tls]:
        if not (self.use_ssl or self.start_tls):
            return None

        tls_config = {'validate': ssl.CERT_REQUIRED if self.verify_ssl else ssl.CERT_NONE}
        if not self.verify_ssl:
            logger.warning("SSL certificate verification disabled")
        if self.ca_cert_file:
            tls_config['ca_certs_file'] = self.ca_cert_file

        return Tls(**tls_config)

    def _drop_connection(self) -> None:
        if self.connection is not None:
            try:
                self.connection.unbind()
            except LDAPException as e:
                logger.debug(f"Ignoring error while unbinding: {e}")
        self.connection = None

    def disconnect(self) -> None:
        """Unbind and close the connection."""
        if self.connection is not None:
            self._drop_connection()
            logger.debug("LDAP connection closed")

    def is_bound(self) -> bool:
        return bool(self.connection is not None and self.connection.bound)

    def validate_bound(self) -> bool:
        """
        Raises:
            LDAPConnectionError: If the connection is not bound
        """
        if not self.is_bound():
            raise LDAPConnectionError("No LDAP connection is currently bound")
        return True

    def read(self, dn: Optional[str], search_filter: str, attributes: List[str]) -> Optional[SearchResult]:
        """Base-scope read of the entry at ``dn`` (``None`` reads the root DSE)."""
        return self._search(dn, search_filter, attributes, BASE)

    def search(self, dn: Optional[str], search_filter: str, attributes: List[str]) -> Optional[SearchResult]:
        """Subtree search rooted at ``dn``."""
        return self._search(dn, search_filter, attributes, SUBTREE)

    def listing(self, dn: Optional[str], search_filter: str, attributes: List[str]) -> Optional[SearchResult]:
        """Single-level search returning the immediate children of ``dn``."""
        return self._search(dn, search_filter, attributes, LEVEL)

    def control_paged_result(self, page_size: int, is_critical: bool, cookie: Optional[bytes] = None) -> None:
        """Request simple paged results for the next search."""
        self._paged_control = PagedControl(page_size, is_critical, cookie or None)

    def control_paged_result_response(self, result: SearchResult) -> Optional[bytes]:
        """
        Extract the paging cookie a search returned.

        Returns:
            The cookie for the next page, or None when there are no more pages
        """
        control = result.controls.get(schema.PAGED_RESULTS_OID) or {}
        cookie = (control.get('value') or {}).get('cookie')
        return cookie or None

    def _search(self, dn, search_filter, attributes, scope) -> Optional[SearchResult]:
        if self.connection is None:
            logger.error("Search attempted without an open LDAP connection")
            return None

        paged, self._paged_control = self._paged_control, None
        search_args = {
            'search_base': dn or '',
            'search_filter': search_filter or schema.ALL_OBJECTS_FILTER,
            'search_scope': scope,
            'attributes': attributes or ALL_ATTRIBUTES,
        }
        if paged is not None:
            search_args.update(
                paged_size=paged.size,
                paged_criticality=paged.criticality,
                paged_cookie=paged.cookie
            )

        logger.debug(f"Searching {search_args['search_base']!r} scope={scope} filter={search_args['search_filter']}")

        try:
            self.connection.search(**search_args)
        except LDAPException as e:
            logger.error(f"LDAP search failed on {dn!r}: {e}")
            return None

        result = self.connection.result or {}
        if result.get('result') not in SUCCESS_CODES:
            logger.warning(f"LDAP search on {dn!r} returned {result.get('description')}: {result.get('message')}")
            return None

        entries = [
            self._convert_entry(item)
            for item in (self.connection.response or [])
            if item.get('type') == 'searchResEntry'
        ]
        return SearchResult(entries=entries, controls=result.get('controls') or {}, result=result)

    @staticmethod
    def _convert_entry(item: Dict[str, Any]) -> Dict[str, Any]:
        entry: Dict[str, Any] = {}
        for name, values in (item.get('raw_attributes') or {}).items():
            key = name.lower()
            if key in schema.BINARY_ATTRIBUTES:
                entry[key] = list(values)
            else:
                entry[key] = [_decode(value) for value in values]
        entry['dn'] = item.get('dn', '')
        return entry

    def get_entries(self, result: SearchResult) -> List[Dict[str, Any]]:
        """Return the raw entries of a search result."""
        return list(result.entries) if result else []

    def mod_add(self, dn: str, entry: Dict[str, Any]) -> bool:
        """Add values to attributes of an existing entry."""
        return self._modify(dn, entry, MODIFY_ADD)

    def mod_delete(self, dn: str, entry: Dict[str, Any]) -> bool:
        """Remove values from attributes of an existing entry."""
        return self._modify(dn, entry, MODIFY_DELETE)

    def _modify(self, dn: str, entry: Dict[str, Any], operation) -> bool:
        changes = {attr: [(operation, _as_list(value))] for attr, value in entry.items()}
        return self._call('modify', dn, changes)

    def add(self, dn: str, entry: Dict[str, Any]) -> bool:
        """Create a new entry."""
        attributes = {attr: value for attr, value in entry.items() if value not in (None, '', [])}
        return self._call('add', dn, attributes=attributes)

    def rename(self, dn: str, new_rdn: str, new_parent: Optional[str] = None, delete_old: bool = True) -> bool:
        """Rename an entry and optionally move it under ``new_parent``."""
        return self._call('modify_dn', dn, new_rdn, delete_old_dn=delete_old, new_superior=new_parent)

    def delete(self, dn: str) -> bool:
        """Delete an entry."""
        return self._call('delete', dn)

    def _call(self, operation: str, dn: str, *args, **kwargs) -> bool:
        if self.connection is None:
            logger.error(f"LDAP {operation} attempted without an open connection")
            return False

        try:
            success = getattr(self.connection, operation)(dn, *args, **kwargs)
        except LDAPException as e:
            logger.error(f"LDAP {operation} failed on {dn}: {e}")
            return False

        if success:
            logger.info(f"LDAP {operation} succeeded on {dn}")
        else:
            logger.warning(f"LDAP {operation} failed on {dn}: {self.connection.result}")
        return bool(success)

    def explode_dn(self, dn: str, with_attributes: bool = False) -> List[str]:
        return explode_dn(dn, with_attributes)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value
    return value


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
