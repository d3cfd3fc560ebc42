from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

import structlog

from bookloop.config import settings
from bookloop.exceptions import AuthorizationFailure, NotFound, ValidationFailure
from bookloop.ids import new_id, parse_identifier
from bookloop.models.db_models import Book
from bookloop.models.schemas import BookStatus, SortField, SortOrder
from bookloop.repositories.book_repository import BookRepository
from bookloop.services.cache import StatsCache
from bookloop.services.filters import build_filter
from bookloop.services.pagination import Page, order_books, paginate
from bookloop.services.search import RankedBook, rank_books
from bookloop.services.validation import validate_book

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BookQuery:
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE
    genre: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: Optional[str] = None
    sort_by: str = SortField.CREATED_AT.value
    sort_order: str = SortOrder.DESC.value


class BookService:
    """Listing lifecycle and the public query operation.

    - Mutations (create, update, status change, delete) are gated on the
      caller owning the listing and validated before anything is written.
    - Reading a listing's detail is the one mutation anyone may trigger: it
      bumps the view counter with an atomic storage-level increment.
    """

    def __init__(self, books: BookRepository, cache: Optional[StatsCache] = None):
        self.books = books
        self.cache = cache or StatsCache()

    # -----------------------------
    # Query
    # -----------------------------
    def list_books(self, query: BookQuery) -> Page[RankedBook]:
        book_filter = build_filter(
            genre=query.genre,
            condition=query.condition,
            min_price=query.min_price,
            max_price=query.max_price,
            search=query.search,
        )
        candidates = self.books.find(book_filter)
        ranked = rank_books(candidates, book_filter.search_text)
        ordered = order_books(ranked, query.sort_by, query.sort_order)
        items, pagination = paginate(ordered, query.page, query.limit)
        logger.debug(
            "books_queried",
            candidates=len(candidates),
            matched=pagination.total_books,
            page=query.page,
            search=book_filter.search_text is not None,
        )
        return Page(items=items, pagination=pagination)

    def list_seller_books(self, seller_id: str) -> List[Book]:
        seller_id = parse_identifier(seller_id, "user")
        ordered = order_books([RankedBook(b) for b in self.books.list_by_seller(seller_id)])
        return [entry.book for entry in ordered]

    # -----------------------------
    # Reads
    # -----------------------------
    def get_book(self, book_id: str) -> Book:
        book_id = parse_identifier(book_id, "book")
        book = self.books.get(book_id)
        if book is None:
            raise NotFound("Book not found")
        return book

    def view_book(self, book_id: str) -> Book:
        """Detail read: counts one view, whoever the caller is."""
        book_id = parse_identifier(book_id, "book")
        if not self.books.increment_views(book_id):
            raise NotFound("Book not found")
        return self.get_book(book_id)

    # -----------------------------
    # Mutations
    # -----------------------------
    def create_book(self, data: Mapping[str, Any], seller_id: str) -> Book:
        result = validate_book(data, partial=False)
        if not result.ok:
            raise ValidationFailure(result.errors)

        now = datetime.now(timezone.utc)
        book = Book(
            id=new_id(),
            seller_id=seller_id,
            status=BookStatus.AVAILABLE.value,
            views=0,
            featured=False,
            created_at=now,
            updated_at=now,
            **result.values,
        )
        book = self.books.add(book)
        self.cache.invalidate()
        logger.info("book_created", book_id=book.id, seller_id=seller_id)
        return book

    def update_book(self, book_id: str, data: Mapping[str, Any], caller_id: str) -> Book:
        book = self.get_book(book_id)
        self._ensure_owner(book, caller_id, "update")

        result = validate_book(data, partial=True)
        if not result.ok:
            raise ValidationFailure(result.errors)
        if not result.values:
            return book

        previous_status = book.status
        book = self.books.update_fields(book, result.values)
        self.cache.invalidate()
        logger.info("book_updated", book_id=book.id, fields=sorted(result.values))
        if book.status != previous_status:
            logger.info("book_status_changed", book_id=book.id, from_status=previous_status, to_status=book.status)
        return book

    def change_status(self, book_id: str, status: Any, caller_id: str) -> Book:
        return self.update_book(book_id, {"status": status}, caller_id)

    def delete_book(self, book_id: str, caller_id: str) -> None:
        book = self.get_book(book_id)
        self._ensure_owner(book, caller_id, "delete")
        self.books.delete(book)
        self.cache.invalidate()
        logger.info("book_deleted", book_id=book.id, seller_id=caller_id)

    @staticmethod
    def _ensure_owner(book: Book, caller_id: str, action: str) -> None:
        if book.seller_id != caller_id:
            logger.warning("book_mutation_forbidden", book_id=book.id, caller_id=caller_id, action=action)
            raise AuthorizationFailure(f"Not authorized to {action} this book")
