"""API error taxonomy.

Learn: Every failure the service reports maps onto one of these classes.
Each carries the HTTP status code and a fixed, client-safe message, and
renders as the same {code, message} JSON body (see main.py handlers).
Anything that is not an APIError becomes InternalServerError at the edge.
"""


class APIError(Exception):
    """Base class for errors that are safe to show to clients."""

    code: int = 500
    message: str = "internal server error"
    headers: dict | None = None

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidInput(APIError):
    code = 400
    message = "invalid input"


class InvalidCredentials(APIError):
    """Login failure. Never says whether the email or the password was wrong."""

    code = 401
    message = "invalid email or password"


class Unauthorized(APIError):
    """Any bad bearer token. Clients cannot tell which check failed."""

    code = 401
    message = "unauthorized"
    headers = {"WWW-Authenticate": "Bearer"}


class UserNotFound(APIError):
    code = 404
    message = "user not found"


class NotFound(APIError):
    code = 404
    message = "not found"


class MethodNotAllowed(APIError):
    code = 405
    message = "method not allowed"


class UserExists(APIError):
    code = 409
    message = "user already exists"


class InternalServerError(APIError):
    code = 500
    message = "internal server error"
