"""Password hashing utilities.

Uses bcrypt for password hashing. bcrypt salts automatically and the work
factor is configurable (USERHUB_BCRYPT_ROUNDS, default 10).
"""

import bcrypt

from userhub.config import settings


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


# A valid hash to verify against when no user matched, so an unknown
# email costs one checkpw like a wrong password does. Built at import so
# no login request ever pays for the hashpw.
DUMMY_HASH = hash_password("dummy-password-for-timing")
