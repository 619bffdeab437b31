"""JWT token creation and verification.

Tokens carry a single claim, the user id, plus the registered iat/exp
claims. Lifetime is fixed at 7 days and is not configurable per call.
"""

from datetime import datetime, timedelta, timezone

import jwt

from userhub.config import settings

TOKEN_LIFETIME = timedelta(days=7)


class TokenError(Exception):
    """Raised when token verification fails."""


def create_access_token(user_id: str) -> str:
    """Sign a JWT whose payload identifies the user."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "iat": now,
        "exp": now + TOKEN_LIFETIME,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if "id" not in payload:
        raise TokenError("Token not valid")
    return payload
