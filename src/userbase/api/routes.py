"""Route access table — which endpoints need a bearer token.

Learn: Auth is declared per (method, path) in ROUTE_ACCESS, not per
router. The users collection is protected except for POST, which is
self-registration: clients without an account must be able to create
one. Putting that exception in a table keeps it visible in one place.

Endpoints register through `route()`, which refuses any (method, path)
missing from the table, so a new endpoint cannot silently go public.
"""

from enum import Enum

from fastapi import APIRouter, Depends

from userbase.auth.dependencies import require_identity

API_PREFIX = "/api"


class Access(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


ROUTE_ACCESS: dict[tuple[str, str], Access] = {
    ("GET", "/api/health"): Access.PUBLIC,
    ("POST", "/api/auth/login"): Access.PUBLIC,
    # Self-registration — the one public method on /api/users
    ("POST", "/api/users"): Access.PUBLIC,
    ("GET", "/api/users"): Access.PROTECTED,
    ("GET", "/api/users/{user_id}"): Access.PROTECTED,
    ("PUT", "/api/users/{user_id}"): Access.PROTECTED,
    ("DELETE", "/api/users/{user_id}"): Access.PROTECTED,
}


def access_for(method: str, path: str) -> Access:
    try:
        return ROUTE_ACCESS[(method, path)]
    except KeyError:
        raise LookupError(f"No access rule for {method} {path}") from None


# (method, full path) → route-level dependencies, filled in as endpoints register
REGISTERED: dict[tuple[str, str], list] = {}


def route(router: APIRouter, method: str, path: str, **kwargs):
    """Register an endpoint on `router` with the access rule from the table."""
    full_path = API_PREFIX + router.prefix + path
    dependencies = list(kwargs.pop("dependencies", []))
    if access_for(method, full_path) is Access.PROTECTED:
        dependencies.insert(0, Depends(require_identity))
    register = router.api_route(
        path, methods=[method], dependencies=dependencies, **kwargs
    )

    def decorator(endpoint):
        registered = register(endpoint)
        REGISTERED[(method, full_path)] = dependencies
        return registered

    return decorator
