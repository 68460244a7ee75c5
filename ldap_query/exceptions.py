"""
Exception types raised by the query layer.

Searches report "nothing found" and "connection failed" through their return
values; only the ``*_or_fail`` entry points, bound checks and argument
validation raise.
"""


class LDAPQueryError(Exception):
    """Base exception for all ldap_query errors."""
    pass


class EntryNotFoundError(LDAPQueryError):
    """Raised when a lookup that requires a result matched nothing."""
    pass


class LDAPConnectionError(LDAPQueryError):
    """Raised when the directory connection cannot be opened or is not bound."""
    pass


class ValidationError(LDAPQueryError):
    """Raised when a required attribute or argument is missing."""
    pass


class InvalidOperatorError(LDAPQueryError, ValueError):
    """Raised when a filter predicate is given an unknown operator."""
    pass
