"""Auth service: credential verification and token issuance.

Unknown email and wrong password are indistinguishable to the caller:
same exception, same message, and the same bcrypt work on both paths.
"""

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from userhub.auth.jwt import create_access_token
from userhub.auth.password import DUMMY_HASH, verify_password
from userhub.db.errors import translating_db_errors
from userhub.db.repository import UserRepository
from userhub.errors import InvalidCredentials

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Credentials are not valid"


class AuthService:
    """Password login and JWT issuance."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)

    def get_jwt_token(self, user_id: uuid.UUID) -> str:
        return create_access_token(str(user_id))

    async def authenticate(self, email: str, password: str) -> str:
        """Return a token for valid credentials, else raise InvalidCredentials.

        The email is looked up exactly as given.
        """
        async with translating_db_errors("AuthService.authenticate", self.db):
            user = await self.users.find_by_email(email)

        if user is None:
            verify_password(password, DUMMY_HASH)
            logger.info("auth.login_failed")
            raise InvalidCredentials(INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            logger.info("auth.login_failed")
            raise InvalidCredentials(INVALID_CREDENTIALS)

        logger.info("auth.login", user_id=str(user.id))
        return self.get_jwt_token(user.id)
