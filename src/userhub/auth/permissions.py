"""Permission tags and the authorization decision.

Each protected route declares, at definition time, the permissions that
grant access. authorize() checks that static declaration against the
authenticated user: holding ANY one of the listed permissions is enough.
An empty declaration means "no restriction".
"""

import enum
from typing import Iterable, Optional, Protocol

import structlog

from userhub.errors import MissingIdentity, PermissionDenied

logger = structlog.get_logger()


class Permission(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    USER = "user"

    RRHH_CREAR = "rrhh_crear"
    RRHH_LEER = "rrhh_leer"
    RRHH_EDITAR = "rrhh_editar"
    RRHH_ELIMINAR = "rrhh_eliminar"

    VEHICULOS_CREAR = "vehiculos_crear"
    VEHICULOS_LEER = "vehiculos_leer"
    VEHICULOS_EDITAR = "vehiculos_editar"
    VEHICULOS_ELIMINAR = "vehiculos_eliminar"


class PermissionHolder(Protocol):
    email: str
    permissions: list[str]


def _values(permissions: Iterable) -> list[str]:
    return [p.value if isinstance(p, Permission) else str(p) for p in permissions]


def authorize(
    required: Iterable,
    user: Optional[PermissionHolder],
    expose_details: bool = True,
) -> None:
    """Allow or deny `user` against the declared `required` permissions.

    Returns None when access is granted. Raises MissingIdentity when no
    user was resolved for the request (the auth layer did not run) and
    PermissionDenied when the user holds none of the required permissions.
    """
    required = list(dict.fromkeys(_values(required)))
    if not required:
        return

    if user is None:
        raise MissingIdentity("User not found in request")

    granted = set(_values(user.permissions or []))
    if granted.intersection(required):
        return

    message = (
        f"User {user.email} needs one of these permissions: "
        f"[{', '.join(required)}]"
    )
    logger.warning("auth.permission_denied", email=user.email, required=required)
    raise PermissionDenied(message if expose_details else "Forbidden resource")
