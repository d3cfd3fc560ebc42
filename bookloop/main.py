from typing import Any, Dict, Optional

import structlog
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookloop.config import settings
from bookloop.db import Base, SessionLocal, check_db_health, engine
from bookloop.dependencies import (
    get_account_service,
    get_book_service,
    get_current_account,
    get_search_assistant,
)
from bookloop.exceptions import BookloopError
from bookloop.logging_config import setup_logging
from bookloop.middleware import RequestIDMiddleware
from bookloop.models.db_models import Account, Book
from bookloop.models.schemas import (
    GENRES,
    AccountSearchResponse,
    AssistData,
    AssistRequest,
    AssistResponse,
    BookCondition,
    BookData,
    BookListData,
    BookListResponse,
    BookOut,
    BookResponse,
    MessageResponse,
    PaginationOut,
    PlatformStatsResponse,
    ProfileResponse,
    SellerBooksData,
    SellerBooksResponse,
    SortField,
    SortOrder,
    StatusChangeRequest,
)
from bookloop.seed import seed_demo_data
from bookloop.services.accounts import AccountService
from bookloop.services.assistant import SearchAssistant
from bookloop.services.books import BookQuery, BookService
from bookloop.services.pagination import Page, Pagination
from bookloop.services.search import RankedBook

setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Bookloop API",
    description="Peer-to-peer used-book marketplace",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)


# -----------------------------
# Error handling
# -----------------------------
@app.exception_handler(BookloopError)
async def bookloop_error_handler(request: Request, exc: BookloopError):
    logger.info("request_rejected", path=request.url.path, status_code=exc.status_code, reason=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": str(err["loc"][-1]) if err.get("loc") else "request", "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"status": "error", "message": "Validation failed", "errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"status": "error", "message": str(exc.detail)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("storage_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"status": "error", "message": "Server error"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("unexpected_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"status": "error", "message": "Server error"})


# -----------------------------
# Converters
# -----------------------------
def book_out(book: Book, score: Optional[float] = None) -> BookOut:
    seller: Optional[Account] = book.seller
    return BookOut(
        id=book.id,
        title=book.title,
        author=book.author,
        genre=book.genre,
        condition=book.condition,
        price=float(book.price),
        description=book.description,
        image_url=book.image_url,
        seller_id=book.seller_id,
        seller_name=seller.name if seller else None,
        seller_email=seller.email if seller else None,
        seller_phone=seller.phone if seller else None,
        seller_location=seller.location if seller else None,
        status=book.status,
        views=book.views,
        featured=book.featured,
        created_at=book.created_at,
        updated_at=book.updated_at,
        relevance_score=score,
    )


def pagination_out(pagination: Pagination) -> PaginationOut:
    return PaginationOut(
        current_page=pagination.current_page,
        total_pages=pagination.total_pages,
        total_books=pagination.total_books,
        has_next=pagination.has_next,
        has_prev=pagination.has_prev,
    )


def book_list_data(page: Page[RankedBook]) -> BookListData:
    return BookListData(
        books=[book_out(entry.book, entry.score) for entry in page.items],
        pagination=pagination_out(page.pagination),
    )


# -----------------------------
# Lifecycle / health
# -----------------------------
@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    if settings.SEED_DEMO_DATA:
        db = SessionLocal()
        try:
            seed_demo_data(db)
        finally:
            db.close()
    logger.info("application_started", seed_demo_data=settings.SEED_DEMO_DATA)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    if check_db_health():
        return {"status": "ready", "checks": {"database": "ok"}}
    logger.error("readiness_check_failed", reason="database_not_accessible")
    return JSONResponse(status_code=503, content={"status": "not ready", "checks": {"database": "failed"}})


# -----------------------------
# Books
# -----------------------------
@app.get("/api/books", response_model=BookListResponse)
def list_books(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    genre: Optional[str] = None,
    condition: Optional[BookCondition] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    search: Optional[str] = None,
    sort_by: SortField = Query(SortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    service: BookService = Depends(get_book_service),
):
    if genre and genre.strip() and genre.strip() not in GENRES:
        raise RequestValidationError(
            [{"loc": ("query", "genre"), "msg": "Invalid genre", "type": "value_error"}]
        )
    query = BookQuery(
        page=page,
        limit=limit,
        genre=genre,
        condition=condition.value if condition else None,
        min_price=min_price,
        max_price=max_price,
        search=search,
        sort_by=sort_by.value,
        sort_order=sort_order.value,
    )
    return BookListResponse(data=book_list_data(service.list_books(query)))


@app.post("/api/books/assist", response_model=AssistResponse)
def assist_search(
    request: AssistRequest,
    assistant: SearchAssistant = Depends(get_search_assistant),
    service: BookService = Depends(get_book_service),
):
    parsed = assistant.parse_query(request.query)
    result = service.list_books(
        BookQuery(
            page=request.page,
            limit=request.limit,
            genre=parsed.genre,
            condition=parsed.condition,
            min_price=parsed.min_price,
            max_price=parsed.max_price,
            search=parsed.search,
        )
    )
    data = book_list_data(result)

    budget_txt = f" under ${parsed.max_price:g}" if parsed.max_price is not None else ""
    topic = parsed.search or parsed.genre or "books"
    message = f"Found {result.pagination.total_books} matches for '{topic}'{budget_txt}."

    return AssistResponse(
        message=message,
        data=AssistData(parsed_query=parsed, books=data.books, pagination=data.pagination),
    )


@app.get("/api/books/user/{user_id}", response_model=SellerBooksResponse)
def list_seller_books(
    user_id: str,
    service: BookService = Depends(get_book_service),
    accounts: AccountService = Depends(get_account_service),
):
    seller = accounts.get_account(user_id)
    books = service.list_seller_books(seller.id)
    return SellerBooksResponse(data=SellerBooksData(books=[book_out(b) for b in books]))


@app.get("/api/books/{book_id}", response_model=BookResponse)
def get_book(book_id: str, service: BookService = Depends(get_book_service)):
    book = service.view_book(book_id)
    return BookResponse(data=BookData(book=book_out(book)))


@app.post("/api/books", response_model=BookResponse, status_code=201)
def create_book(
    payload: Dict[str, Any] = Body(...),
    account: Account = Depends(get_current_account),
    service: BookService = Depends(get_book_service),
):
    book = service.create_book(payload, seller_id=account.id)
    return BookResponse(message="Book listed successfully", data=BookData(book=book_out(book)))


@app.put("/api/books/{book_id}", response_model=BookResponse)
def update_book(
    book_id: str,
    payload: Dict[str, Any] = Body(...),
    account: Account = Depends(get_current_account),
    service: BookService = Depends(get_book_service),
):
    book = service.update_book(book_id, payload, caller_id=account.id)
    return BookResponse(message="Book updated successfully", data=BookData(book=book_out(book)))


@app.patch("/api/books/{book_id}/status", response_model=BookResponse)
def change_book_status(
    book_id: str,
    payload: StatusChangeRequest,
    account: Account = Depends(get_current_account),
    service: BookService = Depends(get_book_service),
):
    book = service.change_status(book_id, payload.status, caller_id=account.id)
    return BookResponse(message="Book status updated", data=BookData(book=book_out(book)))


@app.delete("/api/books/{book_id}", response_model=MessageResponse)
def delete_book(
    book_id: str,
    account: Account = Depends(get_current_account),
    service: BookService = Depends(get_book_service),
):
    service.delete_book(book_id, caller_id=account.id)
    return MessageResponse(message="Book deleted successfully")


# -----------------------------
# Users
# -----------------------------
@app.get("/api/users/profile/{user_id}", response_model=ProfileResponse)
def get_profile(user_id: str, accounts: AccountService = Depends(get_account_service)):
    return {"status": "success", "data": {"user": accounts.get_profile(user_id)}}


@app.get("/api/users/search", response_model=AccountSearchResponse)
def search_users(
    q: str = Query(..., min_length=2),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    accounts: AccountService = Depends(get_account_service),
):
    if len(q.strip()) < 2:
        raise RequestValidationError(
            [{"loc": ("query", "q"), "msg": "Search query must be at least 2 characters", "type": "value_error"}]
        )
    return AccountSearchResponse(data=accounts.search_accounts(q, page=page, limit=limit))


@app.get("/api/users/stats", response_model=PlatformStatsResponse)
def platform_stats(accounts: AccountService = Depends(get_account_service)):
    return {"status": "success", "data": accounts.platform_stats()}
