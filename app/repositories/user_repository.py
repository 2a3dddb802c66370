"""User repository implementation using PostgreSQL."""
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.interfaces.user import IUserRepository, UNSET, require_credential
from app.models.user import User


def _resolve(patch: dict) -> dict:
    return {key: (None if value is UNSET else value) for key, value in patch.items()}


class UserRepository(IUserRepository):
    """PostgreSQL implementation of user repository using SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_by_email(
        self, email: str, verified_only: bool = False, include_inactive: bool = False
    ) -> Optional[dict]:
        stmt = select(User).where(User.email == email.lower())
        if verified_only:
            stmt = stmt.where(User.is_verified.is_(True))
        if not include_inactive:
            stmt = stmt.where(User.is_active.is_(True))
        result = await self._session.execute(stmt)
        user = result.scalar_one_or_none()
        return user.to_dict() if user else None

    async def find_by_id(self, user_id: int) -> Optional[dict]:
        stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
        result = await self._session.execute(stmt)
        user = result.scalar_one_or_none()
        return user.to_dict() if user else None

    async def create(self, user_data: dict) -> dict:
        user = User(
            email=user_data["email"].lower(),
            password_hash=user_data.get("password_hash"),
            password_salt=user_data.get("password_salt"),
            otp_data=user_data.get("otp_data"),
            is_verified=user_data.get("is_verified", False),
            is_active=user_data.get("is_active", True),
        )
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user.to_dict()

    async def update(self, user_id: int, patch: dict) -> Optional[dict]:
        if patch:
            stmt = update(User).where(User.id == user_id).values(**_resolve(patch))
            await self._session.execute(stmt)
            await self._session.flush()
        return await self._get_any(user_id)

    async def update_credential(self, user_id: int, patch: dict) -> Optional[dict]:
        require_credential(patch)
        return await self.update(user_id, patch)

    async def soft_delete(self, user_id: int) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id, User.is_active.is_(True))
            .values(is_active=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0

    async def list_verified(self) -> list[dict]:
        stmt = (
            select(User)
            .where(User.is_verified.is_(True), User.is_active.is_(True))
            .order_by(User.id)
        )
        result = await self._session.execute(stmt)
        return [user.to_dict() for user in result.scalars().all()]

    async def _get_any(self, user_id: int) -> Optional[dict]:
        # Core updates bypass the identity map, so reload the row
        stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        user = result.scalar_one_or_none()
        return user.to_dict() if user else None
