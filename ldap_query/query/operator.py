"""
Predicate operators and boolean connectives for LDAP filters.
"""

from enum import Enum
from typing import Union

from ldap_query.exceptions import InvalidOperatorError


class Operator(Enum):
    """Comparison applied by a single filter predicate."""

    EQUALS = '='
    NOT_EQUALS = '!'
    GREATER_THAN_OR_EQUALS = '>='
    LESS_THAN_OR_EQUALS = '<='
    APPROXIMATELY = '~='
    CONTAINS = 'contains'
    STARTS_WITH = 'starts_with'
    ENDS_WITH = 'ends_with'
    WILDCARD = '*'
    HAS = 'has'

    @classmethod
    def parse(cls, operator: Union['Operator', str]) -> 'Operator':
        """
        Resolve an operator given as a member or its symbol.

        Raises:
            InvalidOperatorError: If the symbol is not a known operator
        """
        if isinstance(operator, cls):
            return operator
        try:
            return cls(str(operator).strip().lower())
        except ValueError:
            raise InvalidOperatorError(f"Invalid filter operator: {operator!r}")

    @property
    def takes_value(self) -> bool:
        return self not in (Operator.WILDCARD, Operator.HAS)


class Boolean(Enum):
    """Connective joining a predicate to the ones before it."""

    AND = '&'
    OR = '|'
