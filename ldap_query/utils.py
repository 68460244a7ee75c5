"""
Helpers shared by the query builder, mapper and management classes.

Escaping, DN parsing and SID formatting are delegated to ldap3 so that the
rules match what the transport itself applies.
"""

import logging
import struct
from typing import Any, List, Union

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.protocol.formatters.formatters import format_sid
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn, parse_dn

from ldap_query.exceptions import ValidationError

logger = logging.getLogger(__name__)


def escape_filter_value(value: Any) -> str:
    """
    Escape a value for literal use inside an LDAP filter.

    Args:
        value: Attribute name or value to escape

    Returns:
        String with ``(``, ``)``, ``*``, ``\\`` and NUL escaped
    """
    if isinstance(value, bytes):
        return ''.join(f'\\{byte:02x}' for byte in value)
    return escape_filter_chars(str(value))


def explode_dn(dn: str, with_attributes: bool = False) -> List[str]:
    """
    Split a distinguished name into its components.

    Args:
        dn: Distinguished name to split
        with_attributes: Keep the ``CN=`` style prefixes when True

    Returns:
        List of RDN values (or ``attr=value`` strings), empty if unparseable
    """
    try:
        components = parse_dn(dn)
    except (LDAPInvalidDnError, TypeError) as e:
        logger.debug(f"Unable to explode DN {dn!r}: {e}")
        return []

    if with_attributes:
        return [f"{attr}={value}" for attr, value, _ in components]
    return [value for _, value, _ in components]


def build_dn(rdn_attr: str, rdn_value: str, *parents: str) -> str:
    """Build a DN from an escaped RDN and any non-empty parent DNs."""
    parts = [f"{rdn_attr}={escape_rdn(rdn_value)}"]
    parts.extend(parent for parent in parents if parent)
    return ','.join(parts)


def container_dn(container: List[str]) -> str:
    """
    Build an OU path from a container list ordered outermost first.

    ``['Groups', 'Sales']`` becomes ``OU=Sales,OU=Groups``.
    """
    return ','.join(f"OU={escape_rdn(ou)}" for ou in reversed(container))


def validate_not_null(name: str, value: Any) -> bool:
    """
    Raise ValidationError if a required argument is missing.

    Args:
        name: Human-readable argument name used in the error
        value: Value to check
    """
    if value is None or value == '':
        raise ValidationError(f"Missing compulsory field [{name}]")
    return True


def validate_required(attributes: dict, required: List[str]) -> bool:
    """Raise ValidationError naming every required key missing from attributes."""
    missing = [key for key in required if not attributes.get(key)]
    if missing:
        raise ValidationError(f"Missing required attributes: {', '.join(missing)}")
    return True


def replace_rid(sid: Union[bytes, str], rid: int) -> Union[bytes, str]:
    """
    Replace the relative identifier (last sub-authority) of a SID.

    Accepts the binary objectSid form or the ``S-1-...`` text form and returns
    the same form.
    """
    if isinstance(sid, str):
        parts = sid.split('-')
        if len(parts) < 4:
            raise ValidationError(f"SID {sid!r} has no relative identifier")
        return '-'.join(parts[:-1] + [str(rid)])

    if len(sid) < 4:
        raise ValidationError("SID is too short to carry a relative identifier")
    return sid[:-4] + struct.pack('<I', rid)


def sid_to_string(sid: Union[bytes, str]) -> str:
    """Convert a binary objectSid to its ``S-1-...`` text form."""
    if isinstance(sid, str):
        return sid
    return format_sid(sid)
