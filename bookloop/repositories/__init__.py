from .account_repository import AccountRepository
from .book_repository import BookRepository, InMemoryBookRepository, SqlAlchemyBookRepository

__all__ = ["AccountRepository", "BookRepository", "InMemoryBookRepository", "SqlAlchemyBookRepository"]
