"""Response hardening headers.

Learn: Responses from an identity service contain tokens and account
data, so the main job here is Cache-Control: no proxy or browser cache
may keep them. The rest are the usual browser-side protections:
- nosniff: the JSON body is never reinterpreted as another content type
- DENY: the API cannot be framed
- no-referrer: API URLs (which contain user IDs) never leak as a Referer
HSTS is only sent when the request itself arrived over HTTPS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

SECURITY_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp SECURITY_HEADERS onto every response, errors included."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
