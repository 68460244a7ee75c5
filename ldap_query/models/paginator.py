"""
Result container for paged searches.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, List


@dataclass(frozen=True)
class Paginator:
    """
    All entries gathered by a paged search.

    ``pages`` is the number of pages the server returned; iteration yields only
    the entries of ``current_page`` (zero-based) sliced by ``per_page``.
    """

    results: List[Any] = field(default_factory=list)
    per_page: int = 50
    current_page: int = 0
    pages: int = 0

    @property
    def current_offset(self) -> int:
        return self.current_page * self.per_page

    def get_page(self, page: int) -> List[Any]:
        start = page * self.per_page
        return self.results[start:start + self.per_page]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.get_page(self.current_page))

    def __len__(self) -> int:
        return len(self.results)
