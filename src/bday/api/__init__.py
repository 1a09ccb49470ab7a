"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Health and the auth router are open. Routes that need a signed-in
user (/auth/me) declare Depends(get_current_user) themselves.
"""

from fastapi import APIRouter

from bday.api.auth import router as auth_router
from bday.api.health import router as health_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
