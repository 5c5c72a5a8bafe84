"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
A token carries {sub, iat, exp} and an HMAC signature. Validation is
signature + expiry only. There is no server-side session table, so a
token stays valid until it expires even after "logout". That is a known
limitation: revocation would need a denylist checked before the signature.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt

from userbase.config import settings
from userbase.errors import APIError
from userbase.users.policy import policy


class TokenError(Exception):
    """Raised when token creation/verification fails."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: Any
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and validates signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(hours=24),
        parse_subject: Callable[[str], Any] = str,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime
        self.parse_subject = parse_subject

    def issue(self, user_id: Any, now: Optional[datetime] = None) -> str:
        """Create a token for user_id, valid from `now` for `lifetime`."""
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate(self, token: str) -> TokenClaims:
        """Verify and decode a token.

        Raises TokenError on a bad signature, malformed token, missing
        claims or expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")

        try:
            user_id = self.parse_subject(payload["sub"])
        except (APIError, ValueError, TypeError):
            raise TokenError("Invalid token subject")

        return TokenClaims(
            user_id=user_id,
            issued_at=datetime.fromtimestamp(payload["iat"], timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
        )


token_service = TokenService(
    secret=settings.jwt_secret,
    algorithm=settings.jwt_algorithm,
    lifetime=timedelta(hours=settings.jwt_expires_hours),
    parse_subject=policy.parse_id,
)


def get_token_service() -> TokenService:
    """FastAPI dependency — the process-wide token service."""
    return token_service
