"""User service: account lifecycle.

Routes call the service, the service calls the repository. Every mutation
starts from find_by_id() and checks the user's current state before
writing:

- inactive users cannot change email, password or permissions
- deactivate/reactivate refuse a no-op transition
- only inactive users can be removed

Business errors raised here reach the caller unchanged. Only SQLAlchemy
faults are translated, by translating_db_errors().
"""

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.auth.password import hash_password
from userhub.auth.permissions import Permission
from userhub.db.errors import translating_db_errors
from userhub.db.models import User
from userhub.db.repository import UserRepository
from userhub.errors import BusinessRuleViolation, InternalError, NotFoundError
from userhub.services.auth_service import AuthService

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _permission_values(permissions: Iterable) -> list[str]:
    values = [Permission(p).value for p in permissions]
    return list(dict.fromkeys(values))


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.auth = AuthService(db)

    def _guard(self, operation: str):
        return translating_db_errors(f"UserService.{operation}", self.db)

    async def find_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.users.find_by_id(user_id)
        if not user:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    async def _find_active(self, user_id: uuid.UUID) -> User:
        user = await self.find_by_id(user_id)
        if not user.is_active:
            raise BusinessRuleViolation("User is not active")
        return user

    # ─── Create / read ──────────────────────────────────

    async def create(
        self,
        email: str,
        password: str,
        permissions: Optional[list] = None,
    ) -> tuple[User, str]:
        """Register a user and log them in.

        Returns the stored user and a token for it. An empty or missing
        permission list becomes [user].
        """
        async with self._guard("create"):
            user = self.users.create(
                email=normalize_email(email),
                password_hash=hash_password(password),
                permissions=_permission_values(permissions or [Permission.USER]),
            )
            user = await self.users.save(user)

        logger.info("users.created", user_id=str(user.id), permissions=user.permissions)
        return user, self.auth.get_jwt_token(user.id)

    async def find_all(self) -> list[User]:
        async with self._guard("find_all"):
            return await self.users.list_all()

    async def find_one(self, user_id: uuid.UUID) -> User:
        async with self._guard("find_one"):
            return await self.find_by_id(user_id)

    # ─── Updates ────────────────────────────────────────

    async def update_email(self, user_id: uuid.UUID, email: str) -> dict:
        normalized = normalize_email(email)
        async with self._guard("update_email"):
            user = await self._find_active(user_id)

            if user.email == normalized:
                raise BusinessRuleViolation("The email is already the same.")

            existing = await self.users.find_by_email(normalized)
            if existing and existing.id != user.id:
                raise BusinessRuleViolation("Email already in use by another user.")

            affected = await self.users.update(user_id, email=normalized)
            if affected == 0:
                raise InternalError("Failed to update email.")

        logger.info("users.email_updated", user_id=str(user_id))
        return {"message": "Email updated"}

    async def update_password(self, user_id: uuid.UUID, password: str) -> dict:
        async with self._guard("update_password"):
            user = await self._find_active(user_id)
            user.password_hash = hash_password(password)
            await self.users.save(user)

        logger.info("users.password_updated", user_id=str(user_id))
        return {"message": "Password updated"}

    async def update_permissions(
        self, user_id: uuid.UUID, permissions: Optional[list]
    ) -> User:
        """Replace the permission set wholesale (no merge)."""
        async with self._guard("update_permissions"):
            user = await self._find_active(user_id)
            user.permissions = _permission_values(permissions or [])
            user = await self.users.save(user)

        logger.info(
            "users.permissions_updated",
            user_id=str(user_id),
            permissions=user.permissions,
        )
        return user

    # ─── Activation ─────────────────────────────────────

    async def deactivate(self, user_id: uuid.UUID) -> User:
        async with self._guard("deactivate"):
            user = await self._find_active(user_id)
            user.is_active = False
            user = await self.users.save(user)

        logger.info("users.deactivated", user_id=str(user_id))
        return user

    async def reactivate(self, user_id: uuid.UUID) -> User:
        async with self._guard("reactivate"):
            user = await self.find_by_id(user_id)
            if user.is_active:
                raise BusinessRuleViolation("User is already active")
            user.is_active = True
            user = await self.users.save(user)

        logger.info("users.reactivated", user_id=str(user_id))
        return user

    async def remove(self, user_id: uuid.UUID) -> dict:
        async with self._guard("remove"):
            user = await self.find_by_id(user_id)
            if user.is_active:
                raise BusinessRuleViolation(
                    "Cannot delete an active user. Please deactivate account first."
                )

            affected = await self.users.delete(user_id)
            if affected == 0:
                raise InternalError("Failed to delete user.")

        logger.info("users.removed", user_id=str(user_id))
        return {"message": f"User with id {user_id} deleted"}
