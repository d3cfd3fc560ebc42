import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Sequence, Tuple, TypeVar

from bookloop.models.schemas import SortField, SortOrder
from bookloop.services.search import RankedBook

MAX_LIMIT = 100

T = TypeVar("T")

_SORT_KEYS: Dict[str, Callable[[Any], Any]] = {
    SortField.CREATED_AT.value: lambda book: book.created_at,
    SortField.PRICE.value: lambda book: book.price,
    SortField.TITLE.value: lambda book: (book.title or "").casefold(),
    SortField.VIEWS.value: lambda book: book.views,
}


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_books: int
    has_next: bool
    has_prev: bool


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    pagination: Pagination


def order_books(
    entries: Sequence[RankedBook],
    sort_by: str = SortField.CREATED_AT.value,
    sort_order: str = SortOrder.DESC.value,
) -> List[RankedBook]:
    """Deterministic total order over ranked books.

    Python's sort is stable (also with reverse=True), so sorting by id first,
    then by the requested key, then by relevance leaves id ascending as the
    final tie-break and relevance as the primary key when present.
    """
    if sort_by not in _SORT_KEYS:
        raise ValueError(f"Unsupported sort field: {sort_by}")
    key = _SORT_KEYS[sort_by]

    ordered = sorted(entries, key=lambda e: e.book.id)
    ordered.sort(key=lambda e: key(e.book), reverse=sort_order == SortOrder.DESC.value)
    if any(e.score is not None for e in ordered):
        ordered.sort(key=lambda e: e.score or 0.0, reverse=True)
    return ordered


def paginate(items: Sequence[T], page: int = 1, limit: int = 12) -> Tuple[List[T], Pagination]:
    if page < 1:
        raise ValueError("page must be a positive integer")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")

    total = len(items)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    window = list(items[start:start + limit])
    return window, Pagination(
        current_page=page,
        total_pages=total_pages,
        total_books=total,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
