"""
FastAPI dependency providers.

Everything a route needs is injected here so tests can swap it through
``app.dependency_overrides`` (database session, cache, assistant).
"""

from fastapi import Depends, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from bookloop.db import get_db
from bookloop.exceptions import AuthenticationRequired, MalformedIdentifier
from bookloop.ids import parse_identifier
from bookloop.models.db_models import Account
from bookloop.repositories import AccountRepository, SqlAlchemyBookRepository
from bookloop.services.accounts import AccountService
from bookloop.services.assistant import SearchAssistant
from bookloop.services.books import BookService
from bookloop.services.cache import StatsCache, build_redis_client

# Set by the authenticating gateway once it has verified the caller's token
account_header = APIKeyHeader(name="X-Account-Id", auto_error=False)

_stats_cache = StatsCache(build_redis_client())
_search_assistant = None


def get_cache() -> StatsCache:
    return _stats_cache


def get_search_assistant() -> SearchAssistant:
    global _search_assistant
    if _search_assistant is None:
        _search_assistant = SearchAssistant()
    return _search_assistant


def get_book_service(
    db: Session = Depends(get_db),
    cache: StatsCache = Depends(get_cache),
) -> BookService:
    return BookService(SqlAlchemyBookRepository(db), cache)


def get_account_service(
    db: Session = Depends(get_db),
    cache: StatsCache = Depends(get_cache),
) -> AccountService:
    return AccountService(AccountRepository(db), SqlAlchemyBookRepository(db), cache)


def get_current_account(
    account_id: str | None = Security(account_header),
    db: Session = Depends(get_db),
) -> Account:
    if not account_id:
        raise AuthenticationRequired("Missing X-Account-Id")
    try:
        account_id = parse_identifier(account_id, "account")
    except MalformedIdentifier:
        raise AuthenticationRequired("Invalid account identity")

    account = AccountRepository(db).get_active(account_id)
    if account is None:
        raise AuthenticationRequired("Invalid account identity")
    return account
