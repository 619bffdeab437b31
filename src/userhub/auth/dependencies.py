"""FastAPI auth dependencies.

get_current_user turns an "Authorization: Bearer <jwt>" header into the
User it names. require_permissions(...) wraps it with the permission
guard; routes declare their accepted permissions once, at definition:

    @router.get("/{user_id}", dependencies=[require_permissions(
        Permission.SUPER_ADMIN, Permission.USER)])

The guard receives the user through Depends(), never from ambient state.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.auth.jwt import TokenError, verify_token
from userhub.auth.permissions import Permission, authorize
from userhub.config import settings
from userhub.db.engine import get_db
from userhub.db.models import User
from userhub.db.repository import UserRepository

logger = structlog.get_logger()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active User (401 otherwise)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Authentication required")

    try:
        payload = verify_token(authorization[7:])
        user_id = uuid.UUID(str(payload["id"]))
    except TokenError as e:
        raise _unauthorized(str(e))
    except ValueError:
        raise _unauthorized("Token not valid")

    user = await UserRepository(db).find_by_id(user_id)
    if not user:
        raise _unauthorized("Token not valid")
    if not user.is_active:
        logger.info("auth.inactive_user_token", user_id=str(user.id))
        raise _unauthorized("User is inactive, talk with an admin")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


class PermissionGuard:
    """Dependency that admits users holding any of the declared permissions."""

    def __init__(self, *permissions: Permission):
        self.permissions = tuple(permissions)

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        authorize(
            self.permissions,
            user,
            expose_details=settings.expose_permission_details,
        )
        return user


def require_permissions(*permissions: Permission):
    """Declare the permissions a route accepts. Usable as a parameter
    default or in a route's dependencies list."""
    return Depends(PermissionGuard(*permissions))
