"""FastAPI auth dependencies — the authorization gate.

Learn: require_identity is attached to every protected route (see
api/routes.py). It turns the Authorization header into a typed
CurrentIdentity, which handlers receive as an ordinary parameter.

The header must be exactly "Bearer <token>": one space, two parts,
capital-B scheme. Anything else (no header, wrong scheme, extra
parts, bad signature, expired token) produces the same 401. The
reason only goes to the debug log, so a client cannot tell a forged
token from an expired one.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Header

from userbase.auth.jwt import TokenError, TokenService, get_token_service
from userbase.errors import Unauthorized
from userbase.users.policy import UserID

logger = structlog.get_logger()

BEARER_SCHEME = "Bearer"


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated user making the request."""

    user_id: UserID


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an Authorization header, or raise Unauthorized."""
    if not authorization:
        logger.debug("auth.rejected", reason="missing_header")
        raise Unauthorized()

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
        logger.debug("auth.rejected", reason="malformed_header")
        raise Unauthorized()

    return parts[1]


async def require_identity(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> CurrentIdentity:
    """Authenticate the request (required — 401 if anything is off)."""
    token = extract_bearer_token(authorization)
    try:
        claims = tokens.validate(token)
    except TokenError as e:
        logger.debug("auth.rejected", reason=str(e))
        raise Unauthorized()

    structlog.contextvars.bind_contextvars(user_id=str(claims.user_id))
    return CurrentIdentity(user_id=claims.user_id)
