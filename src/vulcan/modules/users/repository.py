"""
User Repository

Database operations for user accounts.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.CONSTITUENT,
        password_hash: str | None = None,
        phone: str | None = None,
        date_of_birth: date | None = None,
        locale: str = "en",
        **profile,
    ) -> User:
        """
        Create a user record.

        Extra keyword arguments are profile columns (address, disability
        flags, vendor fields).

        Returns:
            The flushed User (id populated, not committed)
        """
        user = User(
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            role=role,
            password_hash=password_hash,
            phone=phone,
            date_of_birth=date_of_birth,
            locale=locale,
            **profile,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        return await UserRepository.get_by_email(db, email) is not None

    @staticmethod
    async def list_admins(db: AsyncSession) -> list[User]:
        result = await db.execute(
            select(User).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
        )
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, user: User, **fields) -> User:
        """Set the given attributes and commit."""
        for key, value in fields.items():
            setattr(user, key, value)
        await db.commit()
        await db.refresh(user)
        return user
