"""
Search orchestration.

A Search collects selects and predicates through chained calls, takes an
immutable QueryState snapshot when executed, runs it through the connection
in read, recursive or listing mode, and maps the raw entries to models.

Failure and emptiness are reported differently: ``query()`` returns None
when the connection produced no result at all and an empty list when the
search succeeded without matches.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from ldap_query import schema
from ldap_query.exceptions import EntryNotFoundError
from ldap_query.mapper import EntryMapper
from ldap_query.models import Entry, Paginator
from ldap_query.query import Builder, QueryState, SearchMode

logger = logging.getLogger(__name__)

Row = Union[Entry, Dict[str, Any]]


class Search:
    """
    Fluent directory search.

    Example:
        users = (Search(connection, base_dn='DC=corp,DC=example,DC=com')
                 .select(['cn', 'mail'])
                 .where('objectcategory', 'person')
                 .where_starts_with('cn', 'jo')
                 .sort_by('cn', 'asc')
                 .get())
    """

    def __init__(self, connection, base_dn: Optional[str] = None,
                 base_dn_resolver: Optional[Callable[[], Optional[str]]] = None):
        """
        Initialize search.

        Args:
            connection: Connection exposing read/search/listing and paging
            base_dn: Configured base DN used when no DN is set
            base_dn_resolver: Called for the base DN when none is configured;
                defaults to probing the root DSE with find_base_dn()
        """
        self.connection = connection
        self.base_dn = base_dn or ''
        self.base_dn_resolver = base_dn_resolver
        self.mapper = EntryMapper(connection)
        self.query_builder = Builder()

        self._dn: Optional[str] = ''
        self._read = False
        self._recursive = True
        self._raw = False
        self._sort_field = ''
        self._sort_direction = 'desc'

    # Builder delegation

    def select(self, fields=None) -> 'Search':
        self.query_builder.select(fields)
        return self

    def where(self, field, operator=None, value=None) -> 'Search':
        self.query_builder.where(field, operator, value)
        return self

    def or_where(self, field, operator=None, value=None) -> 'Search':
        self.query_builder.or_where(field, operator, value)
        return self

    def where_has(self, field: str) -> 'Search':
        self.query_builder.where_has(field)
        return self

    def where_contains(self, field: str, value: Any) -> 'Search':
        self.query_builder.where_contains(field, value)
        return self

    def where_starts_with(self, field: str, value: Any) -> 'Search':
        self.query_builder.where_starts_with(field, value)
        return self

    def where_ends_with(self, field: str, value: Any) -> 'Search':
        self.query_builder.where_ends_with(field, value)
        return self

    def or_where_contains(self, field: str, value: Any) -> 'Search':
        self.query_builder.or_where_contains(field, value)
        return self

    def or_where_starts_with(self, field: str, value: Any) -> 'Search':
        self.query_builder.or_where_starts_with(field, value)
        return self

    def or_where_ends_with(self, field: str, value: Any) -> 'Search':
        self.query_builder.or_where_ends_with(field, value)
        return self

    # Search options

    def set_dn(self, dn: Optional[str]) -> 'Search':
        """Set the DN to search on; None searches from the directory root."""
        self._dn = None if dn is None else str(dn)
        return self

    def read(self, read: bool = True) -> 'Search':
        """Read a single entry at the DN (base scope). Takes precedence over recursive."""
        self._read = bool(read)
        return self

    def recursive(self, recursive: bool = True) -> 'Search':
        """Search the whole subtree (True) or only immediate children (False)."""
        self._recursive = bool(recursive)
        return self

    def raw(self, raw: bool = True) -> 'Search':
        """Return raw attribute dicts instead of models."""
        self._raw = bool(raw)
        return self

    def sort_by(self, field: str, direction: str = 'desc') -> 'Search':
        self._sort_field = field
        self._sort_direction = 'asc' if str(direction).lower() == 'asc' else 'desc'
        return self

    def get_query(self) -> str:
        """Render the current filter string."""
        return self.query_builder.render()

    def snapshot(self) -> QueryState:
        if self._read:
            mode = SearchMode.READ
        elif self._recursive:
            mode = SearchMode.RECURSIVE
        else:
            mode = SearchMode.LISTING

        return QueryState(
            selects=tuple(self.query_builder.get_selects()),
            predicates=self.query_builder.get_predicates(),
            dn=self._dn,
            mode=mode,
            raw=self._raw,
            sort_field=self._sort_field,
            sort_direction=self._sort_direction,
        )

    # DN resolution

    def get_dn(self, state: Optional[QueryState] = None) -> Optional[str]:
        """
        Return the DN to search on.

        None means the directory root. An unset DN falls back to the base DN.
        """
        dn = self._dn if state is None else state.dn
        if dn is None:
            return None
        if dn == '':
            return self.get_base_dn()
        return dn

    def get_base_dn(self) -> Optional[str]:
        if self.base_dn:
            return self.base_dn

        resolver = self.base_dn_resolver or self.find_base_dn
        base_dn = resolver()
        if not base_dn:
            logger.warning("No base DN configured and none could be discovered; searching from root")
        return base_dn

    def find_base_dn(self) -> Optional[str]:
        """
        Discover the domain's base DN from the root DSE.

        Returns:
            The first defaultNamingContext value, or None if unavailable
        """
        result = (Search(self.connection)
                  .set_dn(None)
                  .read()
                  .raw()
                  .where(schema.OBJECT_CLASS, '*')
                  .first())

        if isinstance(result, dict):
            values = result.get(schema.DEFAULT_NAMING_CONTEXT) or []
            if values:
                return values[0]
        return None

    # Execution

    def query(self, query: str) -> Optional[List[Row]]:
        """
        Run a filter string with the current DN, selects and mode.

        Returns:
            Mapped entries (raw dicts in raw mode), an empty list when nothing
            matched, or None if the connection returned no result
        """
        state = self.snapshot()
        return self._execute(state, query)

    def _execute(self, state: QueryState, query: str) -> Optional[List[Row]]:
        dn = self.get_dn(state)
        search_filter = query or schema.ALL_OBJECTS_FILTER
        selects = list(state.selects)

        if state.mode is SearchMode.READ:
            results = self.connection.read(dn, search_filter, selects)
        elif state.mode is SearchMode.RECURSIVE:
            results = self.connection.search(dn, search_filter, selects)
        else:
            results = self.connection.listing(dn, search_filter, selects)

        if not results:
            logger.debug(f"{state.mode.value} on {dn!r} with {search_filter} returned no result")
            return None

        objects = self._process_results(results, state)
        if state.sort_field:
            objects = sort_rows(objects, state.sort_field, state.sort_direction)
        return objects

    def get(self) -> Optional[List[Row]]:
        """Run the current query."""
        return self.query(self.get_query())

    def all(self) -> Optional[List[Row]]:
        """Return every entry with a common name under the DN."""
        self.where(schema.COMMON_NAME, '*')
        return self.get()

    def first(self) -> Optional[Row]:
        results = self.get()
        if results:
            return results[0]
        return None

    def find(self, anr: str) -> Optional[Row]:
        """Find an entry using ambiguous name resolution."""
        return self.where(schema.ANR, '=', anr).first()

    def find_or_fail(self, anr: str) -> Row:
        """
        Like find(), but raises when nothing matches.

        Raises:
            EntryNotFoundError: If no entry matched
        """
        entry = self.find(anr)
        if entry is None:
            raise EntryNotFoundError(f"Unable to find record for {anr!r} in Active Directory.")
        return entry

    def find_by_dn(self, dn: str) -> Optional[Row]:
        return self.set_dn(dn).read().where(schema.OBJECT_CLASS, '*').first()

    def find_by_dn_or_fail(self, dn: str) -> Row:
        """
        Raises:
            EntryNotFoundError: If no entry exists at the DN
        """
        entry = self.find_by_dn(dn)
        if entry is None:
            raise EntryNotFoundError(f"Unable to find record {dn!r} in Active Directory.")
        return entry

    # Paging

    def iter_pages(self, per_page: int = 50, is_critical: bool = True) -> Iterator[Any]:
        """
        Yield raw result handles one page at a time.

        Each request carries the cookie returned by the previous page; the
        generator stops when the server returns no cookie or a page fails.
        It cannot be restarted once exhausted.
        """
        state = self.snapshot()
        dn = self.get_dn(state)
        search_filter = state.filter or schema.ALL_OBJECTS_FILTER
        selects = list(state.selects)

        cookie = None
        page = 0
        while True:
            self.connection.control_paged_result(per_page, is_critical, cookie)
            results = self.connection.search(dn, search_filter, selects)
            if not results:
                logger.warning(f"Paged search on {dn!r} failed at page {page + 1}")
                return

            page += 1
            cookie = self.connection.control_paged_result_response(results)
            logger.debug(f"Fetched page {page} from {dn!r}, more pages: {bool(cookie)}")
            yield results

            if not cookie:
                return

    def paginate(self, per_page: int = 50, current_page: int = 0,
                 is_critical: bool = True) -> Optional[Paginator]:
        """
        Run the current query with simple paged results.

        Args:
            per_page: Page size requested from the server
            current_page: Page exposed when iterating the Paginator
            is_critical: Ask the server to fail rather than ignore the paging control

        Returns:
            A Paginator over every entry (sorted when sort_by() was set), or
            None if no page was returned
        """
        state = self.snapshot()
        pages = list(self.iter_pages(per_page, is_critical))
        if not pages:
            return None

        objects: List[Row] = []
        for results in pages:
            objects.extend(self._process_results(results, state))
        if state.sort_field:
            objects = sort_rows(objects, state.sort_field, state.sort_direction)

        logger.info(f"Paged search returned {len(objects)} entries in {len(pages)} pages")
        return Paginator(objects, per_page, current_page, len(pages))

    def _process_results(self, results, state: QueryState) -> List[Row]:
        entries = self.connection.get_entries(results)
        if state.raw:
            return list(entries)
        return [self.mapper.map(entry) for entry in entries]


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Numbers, then text, then binary values, so mixed types still compare
    if isinstance(value, bool):
        return (1, str(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, bytes):
        return (2, value.hex())
    return (1, str(value))


def _sort_value(row: Row, field: str):
    if isinstance(row, Entry):
        value = row.get_attribute(field)
    else:
        value = None
        for key, candidate in row.items():
            if str(key).lower() == field.lower():
                value = candidate
                break

    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return tuple(_sort_key(item) for item in value)
    return (_sort_key(value),)


def sort_rows(rows: List[Row], field: str, direction: str = 'desc') -> List[Row]:
    """
    Stable sort of rows by a field's values.

    Rows without the field take no part in the ordering: they follow the
    sorted rows in their original relative order.
    """
    keyed = []
    missing = []
    for row in rows:
        value = _sort_value(row, field)
        if value is None:
            missing.append(row)
        else:
            keyed.append((value, row))

    keyed.sort(key=lambda pair: pair[0], reverse=str(direction).lower() != 'asc')
    return [row for _, row in keyed] + missing
