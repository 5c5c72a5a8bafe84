"""Auth API — login.

Learn: POST /auth/login → email/password → bearer token.

When the deployment has no email column, the login value is the
username instead (see SchemaPolicy.login_field). Either way a wrong
password and an unknown account produce the same 401.
"""

import jwt
import structlog
from fastapi import APIRouter, Depends

from userbase.api.routes import route
from userbase.auth.jwt import TokenService, get_token_service
from userbase.errors import InternalServerError
from userbase.schemas.auth import LoginRequest, TokenResponse
from userbase.users.repository import UserRepository, get_user_repository

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


@route(router, "POST", "/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    repo: UserRepository = Depends(get_user_repository),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with email (or username) and password → signed token."""
    login_value = body.email if repo.schema.login_field == "email" else body.username
    user = await repo.verify_user(login_value, body.password)

    try:
        token = tokens.issue(user.id)
    except jwt.PyJWTError:
        logger.exception("auth.token_issue_failed", user_id=str(user.id))
        raise InternalServerError()

    logger.info("auth.login", user_id=str(user.id))
    return TokenResponse(token=token)
