"""Pydantic schemas for login."""

import re

from pydantic import BaseModel, Field, field_validator

# Login accepts a narrower special-character set than user creation.
LOGIN_PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{6,}$"
)

PASSWORD_RULE_MESSAGE = (
    "Password must be at least 6 characters long and contain at least one "
    "uppercase letter, one lowercase letter, one number, and one special character"
)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=50)

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        if not LOGIN_PASSWORD_RE.match(v):
            raise ValueError(PASSWORD_RULE_MESSAGE)
        return v


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
