"""FastAPI application factory.

Learn: create_app() wires everything together: lifespan (users table,
Redis, engine disposal), middleware, error handlers and the /api router.

Every error leaves the service as {"code": ..., "message": ...}:
APIErrors carry their own code, request validation failures become 400,
routing misses become 404/405, and anything unexpected becomes a bare 500.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userbase import __version__
from userbase.api import api_router
from userbase.config import settings
from userbase.errors import (
    APIError,
    InternalServerError,
    InvalidInput,
    MethodNotAllowed,
    NotFound,
)
from userbase.users.policy import policy

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the users table, try Redis, then serve until shutdown.

    The table matches the policy loaded at import; it is created if absent
    and never altered.
    """
    logger.info(
        "userbase.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        user_fields=list(policy.public_fields),
        id_field=policy.id_field,
    )

    from userbase.db.engine import create_tables, engine
    await create_tables()
    logger.info("userbase.tables_ready")

    from userbase.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("userbase.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("userbase.redis_unavailable", error=str(e))
        # Redis is optional — app works without rate limiting

    yield

    logger.info("userbase.shutdown")
    await close_redis()
    await engine.dispose()


def _error_response(error: APIError, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=error.code,
        content=error.to_dict(),
        headers=headers or error.headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.info("request.invalid", errors=len(exc.errors()))
        return _error_response(InvalidInput())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            error = NotFound()
        elif exc.status_code == 405:
            error = MethodNotAllowed()
        else:
            error = APIError(str(exc.detail))
            error.code = exc.status_code
        return _error_response(error, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("request.unhandled_error")
        return _error_response(InternalServerError())


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="userbase",
        description="Identity-record service — accounts, login, bearer tokens",
        version=__version__,
        lifespan=lifespan,
    )
    # /api/users/ is a 404, not a redirect to the collection
    app.router.redirect_slashes = False

    # ── Middleware stack ──────────────────────────────────────
    # Last added runs first, so the request passes
    # RequestId → Security → RateLimit → CORS → router

    from userbase.middleware.rate_limit import RateLimitMiddleware
    from userbase.middleware.request_id import RequestIdMiddleware
    from userbase.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_error_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: userbase.main:app)
app = create_app()
