"""API route aggregation.

All routers registered here get mounted in main.py.

Health and login are open. Individual user routes declare their own
permission requirements with require_permissions(), so the users router
is mounted without a blanket auth dependency.
"""

from fastapi import APIRouter

from userhub.api.auth import router as auth_router
from userhub.api.health import router as health_router
from userhub.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
