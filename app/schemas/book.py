"""Book request/response schemas."""
from datetime import date, datetime
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.constants import BOOK_SORT_FIELDS, BookCategory, SortOrder


def _validate_url(v: str) -> str:
    v = v.strip()
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("PDF URL must be a valid URL")
    return v


def _validate_text(v: str, name: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{name} is required")
    return v


class BookCreateRequest(BaseModel):
    model_config = ConfigDict(extra='ignore')
    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    pdf_url: str
    published_date: date
    category: BookCategory
    description: Optional[str] = Field(default=None, max_length=1000)
    isbn: Optional[str] = Field(default=None, max_length=32)
    language: Optional[str] = Field(default=None, max_length=50)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _validate_text(v, "Title")

    @field_validator('author')
    @classmethod
    def validate_author(cls, v: str) -> str:
        return _validate_text(v, "Author")

    @field_validator('pdf_url')
    @classmethod
    def validate_pdf_url(cls, v: str) -> str:
        return _validate_url(v)


class BookUpdateRequest(BaseModel):
    """All fields optional; only the ones sent are changed."""
    model_config = ConfigDict(extra='ignore')
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    author: Optional[str] = Field(default=None, min_length=1, max_length=255)
    pdf_url: Optional[str] = None
    published_date: Optional[date] = None
    category: Optional[BookCategory] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    isbn: Optional[str] = Field(default=None, max_length=32)
    language: Optional[str] = Field(default=None, max_length=50)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _validate_text(v, "Title") if v is not None else v

    @field_validator('author')
    @classmethod
    def validate_author(cls, v: Optional[str]) -> Optional[str]:
        return _validate_text(v, "Author") if v is not None else v

    @field_validator('pdf_url')
    @classmethod
    def validate_pdf_url(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v) if v is not None else v


class BookFilters(BaseModel):
    """Query parameters for listing books."""
    search: Optional[str] = None
    author: Optional[str] = None
    category: Optional[BookCategory] = None
    sort_by: str = "published_date"
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    @field_validator('sort_by')
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        if v not in BOOK_SORT_FIELDS:
            raise ValueError(f"sort_by must be one of: {', '.join(BOOK_SORT_FIELDS)}")
        return v

    @field_validator('sort_order', mode='before')
    @classmethod
    def normalize_sort_order(cls, v):
        return v.upper() if isinstance(v, str) else v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class BookData(BaseModel):
    model_config = ConfigDict(extra='ignore')
    id: int
    title: str
    author: str
    pdf_url: str
    published_date: date
    category: str
    description: Optional[str] = None
    isbn: Optional[str] = None
    language: Optional[str] = None
    added_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_books: int
    limit: int
    has_next: bool
    has_prev: bool


class BookListData(BaseModel):
    books: list[BookData]
    pagination: Pagination
