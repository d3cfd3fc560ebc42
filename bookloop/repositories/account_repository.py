from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from bookloop.models.db_models import Account


class AccountRepository:
    """Read access to the accounts owned by the identity service."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: str) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def get_active(self, account_id: str) -> Optional[Account]:
        account = self.get(account_id)
        if account is None or not account.is_active:
            return None
        return account

    def search(self, term: str, offset: int, limit: int) -> Tuple[List[Account], int]:
        # Wildcards typed by the caller match literally
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        like = f"%{escaped}%"
        condition = (Account.is_active.is_(True)) & or_(
            Account.name.ilike(like, escape="\\"),
            Account.location.ilike(like, escape="\\"),
        )
        total = self.db.scalar(select(func.count(Account.id)).where(condition)) or 0
        stmt = (
            select(Account)
            .where(condition)
            .order_by(Account.name.asc(), Account.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.scalars(stmt)), int(total)

    def count_active(self) -> int:
        return int(self.db.scalar(select(func.count(Account.id)).where(Account.is_active.is_(True))) or 0)
