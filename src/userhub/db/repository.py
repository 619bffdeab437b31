"""User repository: the credential store.

All reads and writes of the users table go through here. Uniqueness and
row-update serialization are left to the database; a concurrent writer
that loses the race gets an IntegrityError, which the service layer
translates into a conflict.
"""

import uuid
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.db.models import User


class UserRepository:
    """CRUD for User rows on a request-scoped session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def create(self, **fields: Any) -> User:
        """Build an unsaved User. Call save() to persist it."""
        return User(**fields)

    async def save(self, user: User) -> User:
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def list_all(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at))
        return list(result.scalars().all())

    async def update(self, user_id: uuid.UUID, **fields: Any) -> int:
        """Update columns in place. Returns the number of affected rows."""
        result = await self.db.execute(
            update(User).where(User.id == user_id).values(**fields)
        )
        await self.db.commit()
        return result.rowcount

    async def delete(self, user_id: uuid.UUID) -> int:
        """Delete a row. Returns the number of affected rows."""
        result = await self.db.execute(delete(User).where(User.id == user_id))
        await self.db.commit()
        return result.rowcount
