"""User API routes.

Routes delegate to UserService and declare their permission requirements
with require_permissions(); they never inspect the caller's permissions
themselves. Service errors carry their own status codes (see
userhub.errors), so nothing here translates exceptions.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.auth.dependencies import require_permissions
from userhub.auth.permissions import Permission
from userhub.db.engine import get_db
from userhub.schemas.user import (
    EmailUpdate,
    MessageResponse,
    PasswordUpdate,
    PermissionsUpdate,
    UserCreate,
    UserCreated,
    UserRead,
)
from userhub.services.user_service import UserService

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("", response_model=UserCreated, status_code=201)
async def create_user(body: UserCreate, svc: UserService = Depends(_svc)):
    """Register a user. The response includes a token (auto-login)."""
    user, token = await svc.create(
        email=body.email,
        password=body.password,
        permissions=body.permissions,
    )
    return UserCreated(
        **UserRead.model_validate(user).model_dump(),
        token=token,
    )


# Rate limiting is declared, not enforced: the "short" throttle tier is
# published in the OpenAPI document for a fronting proxy to apply.
@router.get(
    "",
    response_model=list[UserRead],
    openapi_extra={"x-throttle": "short"},
)
async def list_users(svc: UserService = Depends(_svc)):
    return await svc.find_all()


@router.get(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[require_permissions(Permission.SUPER_ADMIN, Permission.USER)],
)
async def get_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    return await svc.find_one(user_id)


@router.patch("/{user_id}/email", response_model=MessageResponse)
async def update_email(
    user_id: uuid.UUID,
    body: EmailUpdate,
    svc: UserService = Depends(_svc),
):
    return await svc.update_email(user_id, body.email)


@router.patch("/{user_id}/password", response_model=MessageResponse)
async def update_password(
    user_id: uuid.UUID,
    body: PasswordUpdate,
    svc: UserService = Depends(_svc),
):
    return await svc.update_password(user_id, body.password)


@router.patch(
    "/{user_id}/permissions",
    response_model=UserRead,
    dependencies=[require_permissions(Permission.SUPER_ADMIN)],
)
async def update_permissions(
    user_id: uuid.UUID,
    body: PermissionsUpdate,
    svc: UserService = Depends(_svc),
):
    """Replace the user's permissions. Super admins only."""
    return await svc.update_permissions(user_id, body.permissions)


@router.patch("/{user_id}/reactivate", response_model=UserRead)
async def reactivate_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    return await svc.reactivate(user_id)


@router.delete("/{user_id}", response_model=MessageResponse)
async def remove_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    """Delete an inactive user."""
    return await svc.remove(user_id)


@router.delete("/{user_id}/deactivate", response_model=UserRead)
async def deactivate_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    return await svc.deactivate(user_id)
