"""Error taxonomy and HTTP mapping.

Services raise these exceptions for expected outcomes (bad state
transitions, duplicates, missing rows, bad credentials, denied access).
They carry their own status code so routes never translate them by hand;
register_exception_handlers() turns them into {"detail": ...} responses.

Unexpected storage faults never reach the caller raw: they are translated
into one of these kinds by userhub.db.errors first.
"""

import structlog
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BusinessRuleViolation(ServiceError):
    """Wrong state transition, inactive user, duplicate value."""

    status_code = 400


class MissingIdentity(ServiceError):
    """A permission check ran without an authenticated user in context.

    This is a wiring fault, not a user fault: the guard was reached
    without the authentication dependency having resolved a user.
    """

    status_code = 400


class InvalidCredentials(ServiceError):
    status_code = 401


class PermissionDenied(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InternalError(ServiceError):
    status_code = 500


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request.service_error",
        path=request.url.path,
        status=exc.status_code,
        error=type(exc).__name__,
        detail=exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Input validation failures are bad requests (400), not 422."""
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
