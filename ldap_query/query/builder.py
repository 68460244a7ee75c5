"""
LDAP filter builder.

Predicates are collected in the order they are added and rendered into a
single RFC 4515 filter string on demand. Consecutive predicates sharing a
boolean connective are batched into one ``(&...)`` or ``(|...)`` group; each
following run wraps everything rendered so far, so grouping always follows
the order in which predicates were added.
"""

from dataclasses import dataclass
from enum import Enum
from itertools import groupby
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ldap_query import schema
from ldap_query.exceptions import InvalidOperatorError
from ldap_query.query.operator import Boolean, Operator
from ldap_query.utils import escape_filter_value


@dataclass(frozen=True)
class Predicate:
    """A single filter clause such as ``(cn=*bob*)``."""

    field: str
    operator: Operator
    value: str = ''
    boolean: Boolean = Boolean.AND

    def render(self) -> str:
        field = escape_filter_value(self.field)

        if not self.operator.takes_value:
            return f"({field}=*)"

        value = escape_filter_value(self.value)

        if self.operator is Operator.CONTAINS:
            return f"({field}=*{value}*)"
        if self.operator is Operator.STARTS_WITH:
            return f"({field}={value}*)"
        if self.operator is Operator.ENDS_WITH:
            return f"({field}=*{value})"
        if self.operator is Operator.NOT_EQUALS:
            return f"(!({field}={value}))"
        if self.operator is Operator.EQUALS:
            return f"({field}={value})"
        # >=, <= and ~= are written as-is between field and value
        return f"({field}{self.operator.value}{value})"


def render_predicates(predicates: Iterable[Predicate]) -> str:
    """
    Render predicates into one filter string.

    Returns:
        The combined filter, or an empty string when there are no predicates
    """
    rendered = None

    for boolean, run in groupby(predicates, key=lambda predicate: predicate.boolean):
        clauses = [predicate.render() for predicate in run]

        if rendered is None:
            if len(clauses) == 1:
                rendered = clauses[0]
                continue
        else:
            clauses.insert(0, rendered)

        rendered = f"({boolean.value}{''.join(clauses)})"

    return rendered or ''


class SearchMode(Enum):
    """Scope a query is executed with."""

    READ = 'read'
    RECURSIVE = 'recursive'
    LISTING = 'listing'


@dataclass(frozen=True)
class QueryState:
    """Immutable snapshot of a search taken just before it is executed."""

    selects: Tuple[str, ...] = ()
    predicates: Tuple[Predicate, ...] = ()
    dn: Optional[str] = ''
    mode: SearchMode = SearchMode.RECURSIVE
    raw: bool = False
    sort_field: str = ''
    sort_direction: str = 'desc'

    @property
    def filter(self) -> str:
        return render_predicates(self.predicates)


class Builder:
    """
    Accumulates selected attributes and filter predicates.

    Mutating methods return the builder so calls can be chained::

        Builder().where('objectcategory', 'person').where_starts_with('cn', 'jo').render()
        # '(&(objectcategory=person)(cn=jo*))'
    """

    def __init__(self):
        self._selects: List[str] = []
        self._predicates: List[Predicate] = []

    def select(self, fields: Union[str, Iterable[str], None] = None) -> 'Builder':
        """Add attributes to retrieve, ignoring duplicates."""
        if fields is None:
            return self
        if isinstance(fields, str):
            fields = [fields]

        for field in fields:
            if field and field not in self._selects:
                self._selects.append(field)
        return self

    def get_selects(self) -> List[str]:
        """
        Attributes to request from the directory.

        When a selection is made, the object category and class are always
        added so results can still be mapped to typed entries. An empty list
        means all attributes.
        """
        selects = list(self._selects)
        if selects:
            lowered = [field.lower() for field in selects]
            for required in (schema.OBJECT_CATEGORY, schema.OBJECT_CLASS):
                if required not in lowered:
                    selects.append(required)
        return selects

    def add_predicate(self, field: str, operator: Union[Operator, str], value: Any = '',
                      boolean: Boolean = Boolean.AND) -> 'Builder':
        operator = Operator.parse(operator)
        if operator.takes_value and value is None:
            raise InvalidOperatorError(f"Operator {operator.name} requires a value for field {field!r}")

        value = '' if value is None or not operator.takes_value else value
        if not isinstance(value, bytes):
            value = str(value)

        self._predicates.append(Predicate(str(field), operator, value, boolean))
        return self

    def add_wildcard(self, field: str, boolean: Boolean = Boolean.AND) -> 'Builder':
        return self.add_predicate(field, Operator.WILDCARD, boolean=boolean)

    def where(self, field: Union[str, Dict[str, Any]], operator: Union[Operator, str, None] = None,
              value: Any = None, boolean: Boolean = Boolean.AND) -> 'Builder':
        """
        Add a predicate.

        Accepts ``where('cn', '=', 'bob')``, the short form ``where('cn', 'bob')``
        meaning equals, ``where('cn', '*')`` meaning the attribute is present,
        and a dict of field/value pairs each added as an equals predicate.
        """
        if isinstance(field, dict):
            for key, val in field.items():
                self.add_predicate(key, Operator.EQUALS, val, boolean)
            return self

        if value is None:
            if operator is None or operator == Operator.WILDCARD.value:
                return self.add_wildcard(field, boolean)
            try:
                operator = Operator.parse(operator)
            except InvalidOperatorError:
                # Short form: the second argument is the value
                return self.add_predicate(field, Operator.EQUALS, operator, boolean)
            # A known operator without a value is rejected by add_predicate
            return self.add_predicate(field, operator, None, boolean)

        return self.add_predicate(field, operator if operator is not None else Operator.EQUALS, value, boolean)

    def or_where(self, field, operator=None, value=None) -> 'Builder':
        return self.where(field, operator, value, Boolean.OR)

    def where_has(self, field: str) -> 'Builder':
        return self.add_predicate(field, Operator.HAS)

    def where_contains(self, field: str, value: Any) -> 'Builder':
        return self.add_predicate(field, Operator.CONTAINS, value)

    def where_starts_with(self, field: str, value: Any) -> 'Builder':
        return self.add_predicate(field, Operator.STARTS_WITH, value)

    def where_ends_with(self, field: str, value: Any) -> 'Builder':
        return self.add_predicate(field, Operator.ENDS_WITH, value)

    def or_where_contains(self, field: str, value: Any) -> 'Builder':
        return self.add_predicate(field, Operator.CONTAINS, value, Boolean.OR)

    def or_where_starts_with(self, field: str, value: Any) -> 'Builder':
        return self.add_predicate(field, Operator.STARTS_WITH, value, Boolean.OR)

    def or_where_ends_with(self, field: str, value: Any) -> 'Builder':
        return self.add_predicate(field, Operator.ENDS_WITH, value, Boolean.OR)

    def get_predicates(self) -> Tuple[Predicate, ...]:
        return tuple(self._predicates)

    def render(self) -> str:
        """Render the current predicates; an empty builder renders ``''``."""
        return render_predicates(self._predicates)

    def clear(self) -> 'Builder':
        self._selects = []
        self._predicates = []
        return self
