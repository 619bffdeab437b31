"""Auth API: password login.

- POST /auth/login → email/password → JWT

Registration lives on POST /users, which logs the new user in.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.db.engine import get_db
from userhub.schemas.auth import LoginRequest, TokenResponse
from userhub.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT."""
    token = await svc.authenticate(body.email, body.password)
    return TokenResponse(token=token)
