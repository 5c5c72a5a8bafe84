"""Every registered endpoint has an access rule, and the rule is applied."""

import pytest
from fastapi import APIRouter
from fastapi.routing import APIRoute

from userbase.api import auth, health, users
from userbase.api.routes import (
    API_PREFIX,
    REGISTERED,
    ROUTE_ACCESS,
    Access,
    access_for,
    route,
)
from userbase.auth.dependencies import require_identity

ROUTERS = (health.router, auth.router, users.router)


def _endpoint_routes():
    """(method, full path, APIRoute) for every endpoint on the API routers."""
    for router in ROUTERS:
        for r in router.routes:
            if isinstance(r, APIRoute):
                for method in r.methods:
                    yield method, API_PREFIX + r.path, r


def _gated(dependencies) -> bool:
    return any(d.dependency is require_identity for d in dependencies)


def test_every_route_has_a_rule():
    assert set(REGISTERED) == set(ROUTE_ACCESS)


def test_routers_hold_only_registered_routes():
    assert {(method, path) for method, path, _ in _endpoint_routes()} == set(REGISTERED)


def test_protected_routes_are_gated():
    for method, path, r in _endpoint_routes():
        expected = ROUTE_ACCESS[(method, path)] is Access.PROTECTED
        assert _gated(r.dependencies) == expected, (method, path)
        assert _gated(REGISTERED[(method, path)]) == expected, (method, path)


def test_registration_is_the_only_public_users_route():
    public = {key for key, access in ROUTE_ACCESS.items() if access is Access.PUBLIC}
    assert {key for key in public if key[1].startswith("/api/users")} == {("POST", "/api/users")}


def test_unlisted_route_cannot_be_registered():
    router = APIRouter(prefix="/users")
    with pytest.raises(LookupError):
        route(router, "PATCH", "/{user_id}")


def test_access_for_unknown_route():
    with pytest.raises(LookupError):
        access_for("GET", "/api/admin")
