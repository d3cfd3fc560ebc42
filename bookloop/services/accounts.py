import math
from typing import Any, Dict, Optional

import structlog

from bookloop.exceptions import NotFound
from bookloop.ids import parse_identifier
from bookloop.models.db_models import Account
from bookloop.models.schemas import (
    AccountPaginationOut,
    AccountSearchData,
    AccountSummary,
    BookStatus,
    GenreCount,
    PlatformStats,
    ProfileOut,
    StatusCounts,
)
from bookloop.repositories import AccountRepository, BookRepository
from bookloop.services.cache import StatsCache

logger = structlog.get_logger(__name__)

TOP_GENRES = 5


class AccountService:
    """Public views over seller accounts and platform-wide statistics."""

    def __init__(self, accounts: AccountRepository, books: BookRepository, cache: Optional[StatsCache] = None):
        self.accounts = accounts
        self.books = books
        self.cache = cache or StatsCache()

    def get_account(self, account_id: str) -> Account:
        account_id = parse_identifier(account_id, "user")
        account = self.accounts.get_active(account_id)
        if account is None:
            raise NotFound("User not found")
        return account

    def get_profile(self, account_id: str) -> Dict[str, Any]:
        account = self.get_account(account_id)

        def load() -> Dict[str, Any]:
            counts = self.books.status_counts(seller_id=account.id)
            stats = StatusCounts(**{s.value: counts.get(s.value, 0) for s in BookStatus})
            profile = ProfileOut(
                id=account.id,
                name=account.name,
                location=account.location,
                member_since=account.created_at,
                total_books=stats.available + stats.sold + stats.reserved,
                stats=stats,
            )
            return profile.model_dump(mode="json", by_alias=True)

        return self.cache.get_or_load(f"profile:{account.id}", load)

    def search_accounts(self, term: str, page: int = 1, limit: int = 10) -> AccountSearchData:
        accounts, total = self.accounts.search(term.strip(), offset=(page - 1) * limit, limit=limit)
        total_pages = math.ceil(total / limit)
        return AccountSearchData(
            users=[
                AccountSummary(id=a.id, name=a.name, location=a.location, member_since=a.created_at)
                for a in accounts
            ],
            pagination=AccountPaginationOut(
                current_page=page,
                total_pages=total_pages,
                total_users=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    def platform_stats(self) -> Dict[str, Any]:
        def load() -> Dict[str, Any]:
            counts = self.books.status_counts()
            total_books = sum(counts.values())
            available = counts.get(BookStatus.AVAILABLE.value, 0)
            stats = PlatformStats(
                total_users=self.accounts.count_active(),
                total_books=total_books,
                available_books=available,
                sold_books=total_books - available,
                top_genres=[GenreCount(name=g, count=n) for g, n in self.books.top_genres(TOP_GENRES)],
            )
            logger.debug("platform_stats_computed", total_books=total_books)
            return stats.model_dump(mode="json", by_alias=True)

        return self.cache.get_or_load("stats:platform", load)
