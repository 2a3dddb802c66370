from abc import ABC, abstractmethod
from typing import Optional

from app.schemas.book import BookFilters


class IBookRepository(ABC):
    @abstractmethod
    async def list(self, filters: BookFilters) -> tuple[list[dict], int]:
        """Return one page of active books and the total number of matches."""
        pass

    @abstractmethod
    async def get_by_id(self, book_id: int) -> Optional[dict]:
        """Retrieve an active book by id."""
        pass

    @abstractmethod
    async def get_by_isbn(self, isbn: str) -> Optional[dict]:
        """Retrieve a book by ISBN, active or not."""
        pass

    @abstractmethod
    async def create(self, book_data: dict) -> dict:
        """Insert a new book and return it."""
        pass

    @abstractmethod
    async def update(self, book_id: int, changes: dict) -> Optional[dict]:
        """Apply ``changes`` to an active book."""
        pass

    @abstractmethod
    async def soft_delete(self, book_id: int) -> bool:
        """Mark a book inactive. Returns False when no active book matched."""
        pass
