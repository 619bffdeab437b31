"""Pydantic schemas for user accounts.

Separate "Create"/"Update" schemas (input) from "Read" schemas (output).
No output schema carries the password hash.
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

from userhub.auth.permissions import Permission
from userhub.schemas.auth import PASSWORD_RULE_MESSAGE

PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{6,}$"
)


def _check_password(v: str) -> str:
    if not PASSWORD_RE.match(v):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return v


# ─── Input ──────────────────────────────────────────────

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    permissions: Optional[list[Permission]] = None

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return _check_password(v)


class EmailUpdate(BaseModel):
    email: EmailStr


class PasswordUpdate(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return _check_password(v)


class PermissionsUpdate(BaseModel):
    permissions: Optional[list[Permission]] = None


# ─── Output ─────────────────────────────────────────────

class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    is_active: bool
    permissions: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserCreated(UserRead):
    """Registration response: the new user plus a login token."""
    token: str


class MessageResponse(BaseModel):
    message: str
