from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookloop.db import Base
from bookloop.ids import new_id
from bookloop.models.schemas import DEFAULT_IMAGE_URL, BookStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    location: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    books: Mapped[list["Book"]] = relationship(back_populates="seller")


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("price > 0 AND price <= 10000", name="ck_books_price_range"),
        CheckConstraint("views >= 0", name="ck_books_views_non_negative"),
        Index("ix_books_seller_id", "seller_id"),
        Index("ix_books_genre", "genre"),
        Index("ix_books_condition", "condition"),
        Index("ix_books_price", "price"),
        Index("ix_books_status", "status"),
        Index("ix_books_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    genre: Mapped[str] = mapped_column(String(40), nullable=False)
    condition: Mapped[str] = mapped_column(String(20), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False, default=DEFAULT_IMAGE_URL)
    seller_id: Mapped[str] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BookStatus.AVAILABLE.value)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    seller: Mapped[Account | None] = relationship(back_populates="books", lazy="joined")
