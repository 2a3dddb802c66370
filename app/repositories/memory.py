from typing import Optional
from datetime import date, datetime, timezone
from app.core.constants import SortOrder
from app.interfaces.book import IBookRepository
from app.interfaces.user import IUserRepository, UNSET, require_credential
from app.schemas.book import BookFilters


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryUserRepository(IUserRepository):
    def __init__(self):
        self._users: dict[int, dict] = {}  # id -> user data
        self._next_id = 1

    async def find_by_email(
        self, email: str, verified_only: bool = False, include_inactive: bool = False
    ) -> Optional[dict]:
        email = email.lower()
        for user in self._users.values():
            if user["email"] != email:
                continue
            if verified_only and not user["is_verified"]:
                return None
            if not include_inactive and not user["is_active"]:
                return None
            return dict(user)
        return None

    async def find_by_id(self, user_id: int) -> Optional[dict]:
        user = self._users.get(user_id)
        if not user or not user["is_active"]:
            return None
        return dict(user)

    async def create(self, user_data: dict) -> dict:
        email = user_data["email"].lower()
        if any(u["email"] == email for u in self._users.values()):
            raise ValueError(f"Duplicate email: {email}")

        timestamp = _now()
        user = {
            "id": self._next_id,
            "email": email,
            "password_hash": user_data.get("password_hash"),
            "password_salt": user_data.get("password_salt"),
            "otp_data": user_data.get("otp_data"),
            "is_verified": user_data.get("is_verified", False),
            "is_active": user_data.get("is_active", True),
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        self._users[self._next_id] = user
        self._next_id += 1
        return dict(user)

    async def update(self, user_id: int, patch: dict) -> Optional[dict]:
        user = self._users.get(user_id)
        if not user:
            return None
        for key, value in patch.items():
            user[key] = None if value is UNSET else value
        user["updated_at"] = _now()
        return dict(user)

    async def update_credential(self, user_id: int, patch: dict) -> Optional[dict]:
        require_credential(patch)
        return await self.update(user_id, patch)

    async def soft_delete(self, user_id: int) -> bool:
        user = self._users.get(user_id)
        if not user or not user["is_active"]:
            return False
        user["is_active"] = False
        user["updated_at"] = _now()
        return True

    async def list_verified(self) -> list[dict]:
        return [
            dict(u) for u in self._users.values()
            if u["is_verified"] and u["is_active"]
        ]


class InMemoryBookRepository(IBookRepository):
    def __init__(self):
        self._books: dict[int, dict] = {}  # id -> book data
        self._next_id = 1

    @staticmethod
    def _serialize(value):
        return value.isoformat() if isinstance(value, date) else value

    @staticmethod
    def _matches(book: dict, filters: BookFilters) -> bool:
        if not book["is_active"]:
            return False
        if filters.search:
            needle = filters.search.lower()
            if needle not in book["title"].lower() and needle not in book["author"].lower():
                return False
        if filters.author and filters.author.lower() not in book["author"].lower():
            return False
        if filters.category and book["category"] != filters.category.value:
            return False
        return True

    async def list(self, filters: BookFilters) -> tuple[list[dict], int]:
        matches = sorted(
            (b for b in self._books.values() if self._matches(b, filters)),
            key=lambda b: b["id"],
        )
        matches.sort(
            key=lambda b: b[filters.sort_by],
            reverse=filters.sort_order == SortOrder.DESC,
        )
        page = matches[filters.offset:filters.offset + filters.limit]
        return [dict(b) for b in page], len(matches)

    async def get_by_id(self, book_id: int) -> Optional[dict]:
        book = self._books.get(book_id)
        if not book or not book["is_active"]:
            return None
        return dict(book)

    async def get_by_isbn(self, isbn: str) -> Optional[dict]:
        for book in self._books.values():
            if book.get("isbn") == isbn:
                return dict(book)
        return None

    async def create(self, book_data: dict) -> dict:
        timestamp = _now()
        book = {key: self._serialize(value) for key, value in book_data.items()}
        book.update({
            "id": self._next_id,
            "language": book.get("language") or "English",
            "description": book.get("description"),
            "isbn": book.get("isbn"),
            "is_active": True,
            "added_by": book.get("added_by"),
            "created_at": timestamp,
            "updated_at": timestamp,
        })
        self._books[self._next_id] = book
        self._next_id += 1
        return dict(book)

    async def update(self, book_id: int, changes: dict) -> Optional[dict]:
        book = self._books.get(book_id)
        if not book or not book["is_active"]:
            return None
        for key, value in changes.items():
            book[key] = self._serialize(value)
        book["updated_at"] = _now()
        return dict(book)

    async def soft_delete(self, book_id: int) -> bool:
        book = self._books.get(book_id)
        if not book or not book["is_active"]:
            return False
        book["is_active"] = False
        book["updated_at"] = _now()
        return True
