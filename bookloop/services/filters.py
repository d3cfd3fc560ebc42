from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.sql.elements import ColumnElement

from bookloop.models.db_models import Book
from bookloop.models.schemas import BookStatus
from bookloop.services.search import matches_text, normalize_search


def _to_decimal(value: Optional[float]) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


@dataclass(frozen=True)
class BookFilter:
    """Optional constraints over listings, combined with AND.

    Every field left as None imposes no constraint. ``status`` is fixed to
    ``available`` for the public query; pass ``status=None`` to drop it.
    """

    genre: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    search_text: Optional[str] = None
    status: Optional[str] = BookStatus.AVAILABLE.value

    def matches(self, book: Any) -> bool:
        if self.status is not None and book.status != self.status:
            return False
        if self.genre is not None and book.genre != self.genre:
            return False
        if self.condition is not None and book.condition != self.condition:
            return False
        if self.min_price is not None and book.price < self.min_price:
            return False
        if self.max_price is not None and book.price > self.max_price:
            return False
        if self.search_text is not None and not matches_text(book, self.search_text):
            return False
        return True

    def to_clauses(self) -> List[ColumnElement[bool]]:
        # search_text is applied after retrieval by the ranker
        clauses: List[ColumnElement[bool]] = []
        if self.status is not None:
            clauses.append(Book.status == self.status)
        if self.genre is not None:
            clauses.append(Book.genre == self.genre)
        if self.condition is not None:
            clauses.append(Book.condition == self.condition)
        if self.min_price is not None:
            clauses.append(Book.price >= self.min_price)
        if self.max_price is not None:
            clauses.append(Book.price <= self.max_price)
        return clauses


def build_filter(
    genre: Optional[str] = None,
    condition: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
) -> BookFilter:
    """Build the public listing predicate from raw query parameters.

    Blank strings count as absent. ``min_price > max_price`` is allowed and
    simply matches nothing.
    """
    genre = genre.strip() if genre else None
    condition = condition.strip() if condition else None
    return BookFilter(
        genre=genre or None,
        condition=condition or None,
        min_price=_to_decimal(min_price),
        max_price=_to_decimal(max_price),
        search_text=normalize_search(search),
    )
