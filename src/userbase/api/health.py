"""Health check endpoint.

Learn: Public GET endpoint that verifies the server is running and
reports whether the database and Redis are reachable. Redis is optional,
so only the database decides between "healthy" and "degraded".
"""

from fastapi import APIRouter
from sqlalchemy import text

from userbase import __version__
from userbase.api.routes import route
from userbase.cache import get_redis
from userbase.db import engine as db_engine
from userbase.users.policy import policy

router = APIRouter()


@route(router, "GET", "/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {
        "server": "ok",
        "version": __version__,
        "user_fields": list(policy.public_fields),
    }

    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"unavailable: {type(e).__name__}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
