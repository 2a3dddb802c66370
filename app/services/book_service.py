"""Book catalogue operations."""
import logging
import math
from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.core.constants import BookErrorDetails
from app.core.handler import AppException
from app.interfaces.book import IBookRepository
from app.interfaces.user import IUserRepository
from app.schemas.book import (
    BookCreateRequest,
    BookData,
    BookFilters,
    BookListData,
    BookUpdateRequest,
    Pagination,
)
from app.services.notification_service import NotificationService


class BookService:
    def __init__(
        self,
        book_repository: IBookRepository,
        user_repository: IUserRepository,
        notifier: Optional[NotificationService] = None,
        settings: Settings = None,
        logger: logging.Logger = None,
    ):
        self.book_repository = book_repository
        self.user_repository = user_repository
        self.notifier = notifier
        self.settings = settings or default_settings
        self.logger = logger or logging.getLogger(__name__)

    async def get_all_books(self, filters: BookFilters) -> BookListData:
        """List active books with search, filtering, sorting and pagination."""
        if filters.limit > self.settings.MAX_PAGE_SIZE:
            filters = filters.model_copy(update={"limit": self.settings.MAX_PAGE_SIZE})

        rows, total = await self.book_repository.list(filters)

        pagination = Pagination(
            current_page=filters.page,
            total_pages=math.ceil(total / filters.limit),
            total_books=total,
            limit=filters.limit,
            has_next=filters.page * filters.limit < total,
            has_prev=filters.page > 1,
        )
        return BookListData(books=[BookData(**row) for row in rows], pagination=pagination)

    async def get_book_by_id(self, book_id: int) -> BookData:
        book = await self.book_repository.get_by_id(book_id)
        if not book:
            raise AppException(message=BookErrorDetails.BOOK_NOT_FOUND, status_code=404)
        return BookData(**book)

    async def _ensure_isbn_free(self, isbn: Optional[str], book_id: Optional[int] = None) -> None:
        if not isbn:
            return
        existing = await self.book_repository.get_by_isbn(isbn)
        if existing and existing["id"] != book_id:
            raise AppException(
                message=BookErrorDetails.ISBN_ALREADY_EXISTS,
                status_code=400,
                data={"isbn": isbn},
            )

    async def create_book(self, data: BookCreateRequest, user_id: int) -> BookData:
        """Persist a book, then queue the announcement to verified users.

        The announcement hand-off never fails the request.
        """
        await self._ensure_isbn_free(data.isbn)

        book_data = data.model_dump()
        book_data["category"] = data.category.value
        book_data["added_by"] = user_id
        book = await self.book_repository.create(book_data)
        self.logger.info(f"Book {book['id']} created by user {user_id}")

        await self._announce(book, user_id)
        return BookData(**book)

    async def _announce(self, book: dict, user_id: int) -> None:
        if self.notifier is None:
            return
        try:
            users = await self.user_repository.list_verified()
            creator = await self.user_repository.find_by_id(user_id)
            self.notifier.enqueue_book_created(
                users, book, creator["email"] if creator else None
            )
        except Exception:
            self.logger.exception(f"Could not queue notifications for book {book['id']}")

    async def update_book(self, book_id: int, data: BookUpdateRequest) -> BookData:
        existing = await self.book_repository.get_by_id(book_id)
        if not existing:
            raise AppException(message=BookErrorDetails.BOOK_NOT_FOUND, status_code=404)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "category" in changes:
            changes["category"] = data.category.value
        if "isbn" in changes:
            await self._ensure_isbn_free(changes["isbn"], book_id)

        book = await self.book_repository.update(book_id, changes)
        if not book:
            raise AppException(message=BookErrorDetails.BOOK_NOT_FOUND, status_code=404)
        return BookData(**book)

    async def delete_book(self, book_id: int) -> None:
        """Soft delete; the row stays but is hidden from every query."""
        deleted = await self.book_repository.soft_delete(book_id)
        if not deleted:
            raise AppException(message=BookErrorDetails.BOOK_NOT_FOUND, status_code=404)
        self.logger.info(f"Book {book_id} deleted")
