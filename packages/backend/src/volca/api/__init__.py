"""API route aggregation.

All routers registered here get mounted in main.py.

Authentication is enforced per route rather than per router: the auth
router mixes open routes (login, refresh, reset) with /auth/me, and the
project routes need the identity anyway to run the access guard.
"""

from fastapi import APIRouter

from volca.api.auth import router as auth_router
from volca.api.health import router as health_router
from volca.api.projects import router as projects_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(projects_router, tags=["projects"])
