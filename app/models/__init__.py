"""SQLAlchemy ORM models."""
from app.models.user import User
from app.models.book import Book

__all__ = [
    "User",
    "Book",
]
