import argparse
import json
import sys

from bookloop.db import Base, SessionLocal, engine
from bookloop.logging_config import setup_logging
from bookloop.models.schemas import BookCondition, SortField, SortOrder
from bookloop.repositories import SqlAlchemyBookRepository
from bookloop.seed import seed_demo_data
from bookloop.services.books import BookQuery, BookService


def _price(raw):
    value = float(raw)
    if value < 0:
        raise argparse.ArgumentTypeError("Price must be 0 or greater.")
    return value


def _limit(raw):
    value = int(raw)
    if not 1 <= value <= 100:
        raise argparse.ArgumentTypeError("Limit must be between 1 and 100.")
    return value


def _page(raw):
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError("Page must be a positive integer.")
    return value


def build_parser():
    parser = argparse.ArgumentParser(description="Browse available book listings")
    parser.add_argument("--search", help="Free-text search over title, author and description")
    parser.add_argument("--genre", help="Exact genre, e.g. 'Science Fiction'")
    parser.add_argument("--condition", choices=[c.value for c in BookCondition])
    parser.add_argument("--min-price", type=_price)
    parser.add_argument("--max-price", type=_price)
    parser.add_argument("--sort-by", choices=[f.value for f in SortField], default=SortField.CREATED_AT.value)
    parser.add_argument("--sort-order", choices=[o.value for o in SortOrder], default=SortOrder.DESC.value)
    parser.add_argument("--page", type=_page, default=1)
    parser.add_argument("--limit", type=_limit, default=12)
    parser.add_argument("--seed", action="store_true", help="Load the demo accounts and listings first")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(stream=sys.stderr)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if args.seed:
            seed_demo_data(db)

        service = BookService(SqlAlchemyBookRepository(db))
        page = service.list_books(
            BookQuery(
                page=args.page,
                limit=args.limit,
                genre=args.genre,
                condition=args.condition,
                min_price=args.min_price,
                max_price=args.max_price,
                search=args.search,
                sort_by=args.sort_by,
                sort_order=args.sort_order,
            )
        )
    finally:
        db.close()

    output = {
        "books": [
            {
                "id": entry.book.id,
                "title": entry.book.title,
                "author": entry.book.author,
                "genre": entry.book.genre,
                "condition": entry.book.condition,
                "price": float(entry.book.price),
                "views": entry.book.views,
                "relevanceScore": entry.score,
            }
            for entry in page.items
        ],
        "pagination": {
            "currentPage": page.pagination.current_page,
            "totalPages": page.pagination.total_pages,
            "totalBooks": page.pagination.total_books,
            "hasNext": page.pagination.has_next,
            "hasPrev": page.pagination.has_prev,
        },
    }
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
