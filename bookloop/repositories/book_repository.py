"""
Repository abstraction for book listing storage.
The SQLAlchemy implementation backs the API; the in-memory one backs
service-level tests and local experiments.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from bookloop.models.db_models import Book
from bookloop.models.schemas import BookStatus
from bookloop.services.filters import BookFilter


class BookRepository(ABC):
    """Abstract interface for listing storage"""

    @abstractmethod
    def add(self, book: Book) -> Book:
        """Persist a new listing"""
        pass

    @abstractmethod
    def get(self, book_id: str) -> Optional[Book]:
        """Retrieve a listing by ID"""
        pass

    @abstractmethod
    def find(self, book_filter: BookFilter) -> List[Book]:
        """Return every listing satisfying the filter's column constraints"""
        pass

    @abstractmethod
    def update_fields(self, book: Book, changes: Dict[str, Any]) -> Book:
        """Apply changes to a listing in a single write"""
        pass

    @abstractmethod
    def delete(self, book: Book) -> None:
        """Permanently remove a listing"""
        pass

    @abstractmethod
    def increment_views(self, book_id: str) -> bool:
        """Atomically add one view, return False if the listing does not exist"""
        pass

    @abstractmethod
    def list_by_seller(self, seller_id: str) -> List[Book]:
        """All listings of a seller, any status"""
        pass

    @abstractmethod
    def status_counts(self, seller_id: Optional[str] = None) -> Dict[str, int]:
        """Listing count per status, optionally for one seller"""
        pass

    @abstractmethod
    def top_genres(self, limit: int = 5) -> List[Tuple[str, int]]:
        """Most common genres among available listings, largest first"""
        pass


class SqlAlchemyBookRepository(BookRepository):
    def __init__(self, db: Session):
        self.db = db

    def add(self, book: Book) -> Book:
        try:
            self.db.add(book)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(book)
        return book

    def get(self, book_id: str) -> Optional[Book]:
        return self.db.get(Book, book_id, populate_existing=True)

    def find(self, book_filter: BookFilter) -> List[Book]:
        stmt = select(Book).where(*book_filter.to_clauses())
        return list(self.db.scalars(stmt).unique())

    def update_fields(self, book: Book, changes: Dict[str, Any]) -> Book:
        try:
            for attr, value in changes.items():
                setattr(book, attr, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(book)
        return book

    def delete(self, book: Book) -> None:
        try:
            self.db.delete(book)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def increment_views(self, book_id: str) -> bool:
        # Counter-only UPDATE; updated_at is pinned so a read does not look like an edit
        stmt = (
            update(Book)
            .where(Book.id == book_id)
            .values(views=Book.views + 1, updated_at=Book.updated_at)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount > 0

    def list_by_seller(self, seller_id: str) -> List[Book]:
        stmt = select(Book).where(Book.seller_id == seller_id)
        return list(self.db.scalars(stmt).unique())

    def status_counts(self, seller_id: Optional[str] = None) -> Dict[str, int]:
        stmt = select(Book.status, func.count(Book.id)).group_by(Book.status)
        if seller_id is not None:
            stmt = stmt.where(Book.seller_id == seller_id)
        return {status: int(count) for status, count in self.db.execute(stmt).all()}

    def top_genres(self, limit: int = 5) -> List[Tuple[str, int]]:
        count = func.count(Book.id)
        stmt = (
            select(Book.genre, count)
            .where(Book.status == BookStatus.AVAILABLE.value)
            .group_by(Book.genre)
            .order_by(count.desc(), Book.genre.asc())
            .limit(limit)
        )
        return [(genre, int(n)) for genre, n in self.db.execute(stmt).all()]


class InMemoryBookRepository(BookRepository):
    """In-memory implementation of BookRepository"""

    def __init__(self):
        self._books: Dict[str, Book] = {}
        self._lock = threading.Lock()

    def add(self, book: Book) -> Book:
        with self._lock:
            if book.id in self._books:
                raise ValueError(f"Book {book.id} already exists")
            self._books[book.id] = book
        return book

    def get(self, book_id: str) -> Optional[Book]:
        return self._books.get(book_id)

    def find(self, book_filter: BookFilter) -> List[Book]:
        # Text matching is left to the ranker, same as the SQL implementation
        column_filter = BookFilter(
            genre=book_filter.genre,
            condition=book_filter.condition,
            min_price=book_filter.min_price,
            max_price=book_filter.max_price,
            status=book_filter.status,
        )
        with self._lock:
            books = list(self._books.values())
        return [b for b in books if column_filter.matches(b)]

    def update_fields(self, book: Book, changes: Dict[str, Any]) -> Book:
        with self._lock:
            if book.id not in self._books:
                raise ValueError(f"Book {book.id} not found")
            for attr, value in changes.items():
                setattr(book, attr, value)
            book.updated_at = datetime.now(timezone.utc)
        return book

    def delete(self, book: Book) -> None:
        with self._lock:
            self._books.pop(book.id, None)

    def increment_views(self, book_id: str) -> bool:
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return False
            book.views += 1
            return True

    def list_by_seller(self, seller_id: str) -> List[Book]:
        with self._lock:
            return [b for b in self._books.values() if b.seller_id == seller_id]

    def status_counts(self, seller_id: Optional[str] = None) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        with self._lock:
            for b in self._books.values():
                if seller_id is None or b.seller_id == seller_id:
                    counts[b.status] = counts.get(b.status, 0) + 1
        return counts

    def top_genres(self, limit: int = 5) -> List[Tuple[str, int]]:
        counts: Dict[str, int] = {}
        with self._lock:
            for b in self._books.values():
                if b.status == BookStatus.AVAILABLE.value:
                    counts[b.genre] = counts.get(b.genre, 0) + 1
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
