from abc import ABC, abstractmethod
from typing import Optional


class _Unset:
    """Marker for a column that should be cleared by an update."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


class IUserRepository(ABC):
    @abstractmethod
    async def find_by_email(
        self, email: str, verified_only: bool = False, include_inactive: bool = False
    ) -> Optional[dict]:
        """Retrieve a user by email.

        Args:
            email: Lower-cased email address
            verified_only: Only match users whose email has been verified
            include_inactive: Also match soft-deleted users
        """
        pass

    @abstractmethod
    async def find_by_id(self, user_id: int) -> Optional[dict]:
        """Retrieve an active user by id."""
        pass

    @abstractmethod
    async def create(self, user_data: dict) -> dict:
        """Insert a new user and return it."""
        pass

    @abstractmethod
    async def update(self, user_id: int, patch: dict) -> Optional[dict]:
        """Apply ``patch`` in one write. ``UNSET`` values clear the column."""
        pass

    @abstractmethod
    async def update_credential(self, user_id: int, patch: dict) -> Optional[dict]:
        """Replace the stored password hash and salt, plus any other fields in ``patch``."""
        pass

    @abstractmethod
    async def soft_delete(self, user_id: int) -> bool:
        """Mark a user inactive. Returns False when no active user matched."""
        pass

    @abstractmethod
    async def list_verified(self) -> list[dict]:
        """All active, verified users."""
        pass


CREDENTIAL_FIELDS = ("password_hash", "password_salt")


def require_credential(patch: dict) -> None:
    missing = [name for name in CREDENTIAL_FIELDS if not patch.get(name)]
    if missing:
        raise ValueError(f"Credential patch is missing: {', '.join(missing)}")
