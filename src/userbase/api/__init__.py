"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is not applied at the include_router level. Each endpoint
picks up its rule from routes.ROUTE_ACCESS when it is registered, because
/api/users mixes a public method (POST) with protected ones.
"""

from fastapi import APIRouter

from userbase.api.auth import router as auth_router
from userbase.api.health import router as health_router
from userbase.api.routes import API_PREFIX
from userbase.api.users import router as users_router

api_router = APIRouter(prefix=API_PREFIX)

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
