"""Database error translation.

Storage faults are reduced to a DatabaseError (SQLSTATE code plus the
diagnostic fields the driver exposes), logged, and mapped onto the service
error taxonomy by translate_db_error(). The mapping is a pure function;
the caller decides whether to raise what it returns.

Raw database detail never ends up in the returned message.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.exc import DBAPIError, NoResultFound, SQLAlchemyError

from userhub.errors import (
    BusinessRuleViolation,
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
)

logger = structlog.get_logger()

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
INVALID_TEXT_REPRESENTATION = "22P02"
INVALID_DATETIME_FORMAT = "22007"

ENTITY_NOT_FOUND = "EntityNotFound"

_MESSAGES = {
    UNIQUE_VIOLATION: "This record already exists",
    FOREIGN_KEY_VIOLATION: "The operation cannot be completed because of dependent records",
    NOT_NULL_VIOLATION: "Required fields are missing",
    INVALID_TEXT_REPRESENTATION: "Invalid data format",
    INVALID_DATETIME_FORMAT: "Invalid date format",
}

# sqlite3 reports constraint failures by name rather than SQLSTATE
_SQLITE_CODES = {
    "SQLITE_CONSTRAINT_UNIQUE": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_PRIMARYKEY": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_FOREIGNKEY": FOREIGN_KEY_VIOLATION,
    "SQLITE_CONSTRAINT_NOTNULL": NOT_NULL_VIOLATION,
}


@dataclass
class DatabaseError:
    """Structured view of a storage fault."""

    code: Optional[str] = None
    detail: Optional[str] = None
    constraint: Optional[str] = None
    table: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "DatabaseError":
        """Pull SQLSTATE and diagnostics out of a SQLAlchemy exception.

        Handles asyncpg (SQLSTATE on the adapted error, diagnostics on the
        driver exception it wraps), psycopg (diag object) and sqlite3
        (error names).
        """
        if isinstance(exc, NoResultFound):
            return cls(name=ENTITY_NOT_FOUND, detail=str(exc))

        orig = exc.orig if isinstance(exc, DBAPIError) else exc
        driver = getattr(orig, "__cause__", None) or orig

        code = (
            getattr(orig, "sqlstate", None)
            or getattr(orig, "pgcode", None)
            or getattr(driver, "sqlstate", None)
        )
        if code is None:
            code = _SQLITE_CODES.get(getattr(driver, "sqlite_errorname", None))
        if code is None and "UNIQUE constraint failed" in str(orig):
            code = UNIQUE_VIOLATION

        diag = getattr(driver, "diag", None)
        return cls(
            code=code,
            detail=getattr(driver, "detail", None)
            or getattr(diag, "message_detail", None),
            constraint=getattr(driver, "constraint_name", None)
            or getattr(diag, "constraint_name", None),
            table=getattr(driver, "table_name", None)
            or getattr(diag, "table_name", None),
            name=type(driver).__name__,
        )


def translate_db_error(error: DatabaseError) -> ServiceError:
    """Map a storage fault to the service error it should surface as."""
    if error.code == UNIQUE_VIOLATION:
        return ConflictError(_MESSAGES[UNIQUE_VIOLATION])
    if error.code in (
        FOREIGN_KEY_VIOLATION,
        NOT_NULL_VIOLATION,
        INVALID_TEXT_REPRESENTATION,
        INVALID_DATETIME_FORMAT,
    ):
        return BusinessRuleViolation(_MESSAGES[error.code])
    if error.name == ENTITY_NOT_FOUND:
        return NotFoundError("Resource not found")
    return InternalError("Internal server error")


def log_db_error(error: DatabaseError, context: Optional[str] = None) -> None:
    logger.error(
        "db.error",
        error_code=error.code,
        error_detail=error.detail,
        constraint=error.constraint,
        table=error.table,
        context=context or "Unknown",
    )


@asynccontextmanager
async def translating_db_errors(context: str, session=None):
    """Translate SQLAlchemy faults raised inside the block.

    ServiceErrors raised inside the block pass through untouched; only
    SQLAlchemyError is logged, rolled back (when a session is given) and
    replaced by the translated service error.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        error = DatabaseError.from_exception(exc)
        log_db_error(error, context)
        if session is not None:
            await session.rollback()
        raise translate_db_error(error) from exc
