from datetime import datetime, timedelta, timezone
from decimal import Decimal

from bookloop.models.db_models import Book

ALICE_ID = "11111111-1111-4111-8111-111111111111"
BOB_ID = "22222222-2222-4222-8222-222222222222"
CAROL_ID = "33333333-3333-4333-8333-333333333333"

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, _ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)

    def incr(self, key):
        self.store[key] = str(int(self.store.get(key, 0)) + 1)
        return int(self.store[key])


def valid_payload(**overrides):
    payload = {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "condition": "good",
        "price": 12.50,
        "description": "Classic desert epic, good.",
    }
    payload.update(overrides)
    return payload


def book_id(n):
    return f"00000000-0000-4000-8000-{n:012d}"


def make_book(n, **overrides):
    """Build a transient listing with a predictable id and creation time."""
    values = dict(
        id=book_id(n),
        title=f"Book {n}",
        author="Some Author",
        genre="Fiction",
        condition="good",
        price=Decimal("10.00"),
        description="A perfectly ordinary used book for sale.",
        image_url="https://example.com/cover.jpg",
        seller_id=ALICE_ID,
        status="available",
        views=0,
        featured=False,
        created_at=BASE_TIME + timedelta(minutes=n),
        updated_at=BASE_TIME + timedelta(minutes=n),
    )
    values.update(overrides)
    values["price"] = Decimal(str(values["price"]))
    return Book(**values)


def auth(account_id):
    return {"X-Account-Id": account_id}
