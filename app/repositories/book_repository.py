"""Book repository implementation using PostgreSQL."""
from typing import Optional
from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.constants import SortOrder
from app.interfaces.book import IBookRepository
from app.models.book import Book
from app.schemas.book import BookFilters


class BookRepository(IBookRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _conditions(filters: BookFilters) -> list:
        conditions = [Book.is_active.is_(True)]
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(Book.title.ilike(pattern), Book.author.ilike(pattern)))
        if filters.author:
            conditions.append(Book.author.ilike(f"%{filters.author}%"))
        if filters.category:
            conditions.append(Book.category == filters.category.value)
        return conditions

    async def list(self, filters: BookFilters) -> tuple[list[dict], int]:
        conditions = self._conditions(filters)

        count_stmt = select(func.count()).select_from(Book).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        column = getattr(Book, filters.sort_by)
        ordering = column.asc() if filters.sort_order == SortOrder.ASC else column.desc()
        stmt = (
            select(Book)
            .where(*conditions)
            .order_by(ordering, Book.id.asc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self._session.execute(stmt)
        return [book.to_dict() for book in result.scalars().all()], total

    async def get_by_id(self, book_id: int) -> Optional[dict]:
        stmt = select(Book).where(Book.id == book_id, Book.is_active.is_(True))
        result = await self._session.execute(stmt)
        book = result.scalar_one_or_none()
        return book.to_dict() if book else None

    async def get_by_isbn(self, isbn: str) -> Optional[dict]:
        stmt = select(Book).where(Book.isbn == isbn)
        result = await self._session.execute(stmt)
        book = result.scalar_one_or_none()
        return book.to_dict() if book else None

    async def create(self, book_data: dict) -> dict:
        book = Book(**book_data)
        if not book.language:
            book.language = "English"
        self._session.add(book)
        await self._session.flush()
        await self._session.refresh(book)
        return book.to_dict()

    async def update(self, book_id: int, changes: dict) -> Optional[dict]:
        stmt = select(Book).where(Book.id == book_id, Book.is_active.is_(True))
        result = await self._session.execute(stmt)
        book = result.scalar_one_or_none()
        if not book:
            return None

        for key, value in changes.items():
            setattr(book, key, value)
        await self._session.flush()
        await self._session.refresh(book)
        return book.to_dict()

    async def soft_delete(self, book_id: int) -> bool:
        stmt = (
            update(Book)
            .where(Book.id == book_id, Book.is_active.is_(True))
            .values(is_active=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0
