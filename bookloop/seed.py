from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from bookloop.ids import new_id
from bookloop.models.db_models import Account, Book
from bookloop.services.validation import validate_book

logger = structlog.get_logger(__name__)

DEMO_ACCOUNTS = [
    {"name": "Maya Chen", "email": "maya@example.com", "phone": "555-0101", "location": "Portland, OR"},
    {"name": "Daniel Okafor", "email": "daniel@example.com", "phone": "555-0102", "location": "Austin, TX"},
    {"name": "Priya Raman", "email": "priya@example.com", "phone": "555-0103", "location": "Chicago, IL"},
]

DEMO_BOOKS = [
    {"seller": "maya@example.com", "title": "Dune", "author": "Frank Herbert", "genre": "Science Fiction", "condition": "good", "price": 12.50, "description": "Classic desert-planet epic. Spine creased, pages clean."},
    {"seller": "maya@example.com", "title": "The Left Hand of Darkness", "author": "Ursula K. Le Guin", "genre": "Science Fiction", "condition": "like-new", "price": 9.00, "description": "Read once, no markings. Ace paperback edition."},
    {"seller": "maya@example.com", "title": "Leviathan Wakes", "author": "James S. A. Corey", "genre": "Science Fiction", "condition": "fair", "price": 6.75, "description": "Space opera that starts The Expanse. Some shelf wear on cover."},
    {"seller": "maya@example.com", "title": "The Name of the Wind", "author": "Patrick Rothfuss", "genre": "Fantasy", "condition": "good", "price": 8.00, "description": "Mass market paperback, light reading wear throughout."},
    {"seller": "daniel@example.com", "title": "Gone Girl", "author": "Gillian Flynn", "genre": "Mystery", "condition": "good", "price": 5.50, "description": "Thriller in decent shape, small coffee stain on back cover."},
    {"seller": "daniel@example.com", "title": "The Hound of the Baskervilles", "author": "Arthur Conan Doyle", "genre": "Mystery", "condition": "poor", "price": 2.00, "description": "Well-loved copy, loose pages but complete text."},
    {"seller": "daniel@example.com", "title": "Sapiens", "author": "Yuval Noah Harari", "genre": "History", "condition": "like-new", "price": 14.00, "description": "Hardcover with dust jacket, bought last year and read once."},
    {"seller": "daniel@example.com", "title": "Introduction to Algorithms", "author": "Cormen, Leiserson, Rivest, Stein", "genre": "Textbook", "condition": "good", "price": 45.00, "description": "Third edition. Some highlighting in the first four chapters."},
    {"seller": "priya@example.com", "title": "Pride and Prejudice", "author": "Jane Austen", "genre": "Romance", "condition": "new", "price": 7.99, "description": "Penguin Classics edition, still in shrink wrap."},
    {"seller": "priya@example.com", "title": "Meditations", "author": "Marcus Aurelius", "genre": "Philosophy", "condition": "good", "price": 6.00, "description": "Gregory Hays translation, a few pencil notes in margins."},
    {"seller": "priya@example.com", "title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Children", "condition": "fair", "price": 4.50, "description": "Illustrated edition, cover corners worn but binding tight."},
    {"seller": "priya@example.com", "title": "Atomic Habits", "author": "James Clear", "genre": "Self-Help", "condition": "like-new", "price": 11.00, "description": "No highlighting, looks unread apart from a bent bookmark."},
]


def seed_demo_data(db: Session) -> int:
    """Insert demo accounts and listings that are not there yet (idempotent)."""
    accounts = {a.email: a for a in db.scalars(select(Account)).all()}
    for item in DEMO_ACCOUNTS:
        if item["email"] not in accounts:
            account = Account(id=new_id(), **item)
            db.add(account)
            accounts[item["email"]] = account
    db.flush()

    existing_titles = {t for (t,) in db.execute(select(Book.title)).all() if t}

    to_add = []
    base_time = datetime.now(timezone.utc) - timedelta(days=len(DEMO_BOOKS))
    for offset, item in enumerate(DEMO_BOOKS):
        if item["title"] in existing_titles:
            continue
        data = {k: v for k, v in item.items() if k != "seller"}
        result = validate_book(data)
        if not result.ok:
            logger.warning("seed_book_invalid", title=item["title"], errors=[e.message for e in result.errors])
            continue
        created = base_time + timedelta(days=offset)
        to_add.append(
            Book(
                id=new_id(),
                seller_id=accounts[item["seller"]].id,
                featured=offset % 5 == 0,
                created_at=created,
                updated_at=created,
                **result.values,
            )
        )

    if to_add:
        db.add_all(to_add)
    db.commit()
    logger.info("demo_data_seeded", books_added=len(to_add))
    return len(to_add)
