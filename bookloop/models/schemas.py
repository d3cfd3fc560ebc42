from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_IMAGE_URL = "https://images.pexels.com/photos/159711/books-bookstore-book-reading-159711.jpeg"

GENRES = (
    "Fiction",
    "Non-Fiction",
    "Mystery",
    "Romance",
    "Science Fiction",
    "Fantasy",
    "Biography",
    "History",
    "Self-Help",
    "Textbook",
    "Children",
    "Young Adult",
    "Poetry",
    "Philosophy",
    "Religion",
)


class BookCondition(str, Enum):
    # Ordered best to worst
    NEW = "new"
    LIKE_NEW = "like-new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class BookStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RESERVED = "reserved"


class SortField(str, Enum):
    CREATED_AT = "createdAt"
    PRICE = "price"
    TITLE = "title"
    VIEWS = "views"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class BookOut(CamelModel):
    id: str
    title: str
    author: str
    genre: str
    condition: str
    price: float
    description: str
    image_url: str
    seller_id: str
    seller_name: Optional[str] = None
    seller_email: Optional[str] = None
    seller_phone: Optional[str] = None
    seller_location: Optional[str] = None
    status: str
    views: int
    featured: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
    relevance_score: Optional[float] = None


class PaginationOut(CamelModel):
    current_page: int
    total_pages: int
    total_books: int
    has_next: bool
    has_prev: bool


class BookListData(CamelModel):
    books: List[BookOut]
    pagination: PaginationOut


class BookListResponse(CamelModel):
    status: str = "success"
    data: BookListData


class SellerBooksData(CamelModel):
    books: List[BookOut]


class SellerBooksResponse(CamelModel):
    status: str = "success"
    data: SellerBooksData


class BookData(CamelModel):
    book: BookOut


class BookResponse(CamelModel):
    status: str = "success"
    message: Optional[str] = None
    data: BookData


class MessageResponse(CamelModel):
    status: str = "success"
    message: str


class StatusChangeRequest(CamelModel):
    # Left loose so the shared validation rules report bad values
    status: Any = None


class AssistRequest(CamelModel):
    query: str = Field(..., min_length=1, description="Natural language request, e.g. 'cozy mystery under $8 in good condition'")
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1, le=100)

    model_config = ConfigDict(
        json_schema_extra={"example": {"query": "fantasy paperback in good condition under $10", "page": 1, "limit": 12}}
    )


class ParsedBookQuery(CamelModel):
    search: Optional[str] = None
    genre: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    parse_confidence: float = Field(0.0, ge=0.0, le=1.0)


class AssistData(CamelModel):
    parsed_query: ParsedBookQuery
    books: List[BookOut]
    pagination: PaginationOut


class AssistResponse(CamelModel):
    status: str = "success"
    message: str
    data: AssistData


class StatusCounts(CamelModel):
    available: int = 0
    sold: int = 0
    reserved: int = 0


class ProfileOut(CamelModel):
    id: str
    name: str
    location: Optional[str] = None
    member_since: datetime
    total_books: int
    stats: StatusCounts


class ProfileData(CamelModel):
    user: ProfileOut


class ProfileResponse(CamelModel):
    status: str = "success"
    data: ProfileData


class AccountSummary(CamelModel):
    id: str
    name: str
    location: Optional[str] = None
    member_since: datetime


class AccountPaginationOut(CamelModel):
    current_page: int
    total_pages: int
    total_users: int
    has_next: bool
    has_prev: bool


class AccountSearchData(CamelModel):
    users: List[AccountSummary]
    pagination: AccountPaginationOut


class AccountSearchResponse(CamelModel):
    status: str = "success"
    data: AccountSearchData


class GenreCount(CamelModel):
    name: str
    count: int


class PlatformStats(CamelModel):
    total_users: int
    total_books: int
    available_books: int
    sold_books: int
    top_genres: List[GenreCount] = Field(default_factory=list)


class PlatformStatsResponse(CamelModel):
    status: str = "success"
    data: PlatformStats
