"""User API routes.

Learn: FastAPI routers define HTTP endpoints. Each route function
receives dependencies (repository, identity) via Depends() and delegates
to the repository. Access rules come from routes.ROUTE_ACCESS:
- POST   /users       → create an account (public)
- GET    /users       → list users
- GET    /users/:id   → one user
- PUT    /users/:id   → change username and/or email
- DELETE /users/:id   → hard delete
"""

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from userbase.api.routes import route
from userbase.auth.dependencies import CurrentIdentity, require_identity
from userbase.errors import InvalidInput
from userbase.schemas.user import MessageResponse, UserCreate, UserRead, UserUpdate
from userbase.users.policy import UserID, policy
from userbase.users.repository import UserRepository, get_user_repository

logger = structlog.get_logger()

router = APIRouter(prefix="/users")

_user_out = {"response_model_exclude_unset": True}


def parse_user_id(user_id: str) -> UserID:
    """Path segment → identifier of the configured type (400 if malformed)."""
    return policy.parse_id(user_id)


async def read_user_update(request: Request) -> UserUpdate:
    """PUT body, read only once the route-level gate has passed.

    A body parameter would be decoded by FastAPI before any dependency
    runs, so an anonymous caller sending bad JSON would see 400, not 401.
    """
    try:
        return UserUpdate.model_validate_json(await request.body())
    except ValidationError:
        raise InvalidInput()


@route(router, "POST", "", response_model=UserRead, status_code=201, **_user_out)
async def create_user(
    body: UserCreate,
    repo: UserRepository = Depends(get_user_repository),
):
    """Self-registration."""
    return await repo.create_user(body.username, body.email, body.password)


@route(router, "GET", "", response_model=list[UserRead], **_user_out)
async def list_users(repo: UserRepository = Depends(get_user_repository)):
    return await repo.get_users()


@route(router, "GET", "/{user_id}", response_model=UserRead, **_user_out)
async def get_user(
    target_id: UserID = Depends(parse_user_id),
    repo: UserRepository = Depends(get_user_repository),
):
    return await repo.get_user_by_id(target_id)


@route(router, "PUT", "/{user_id}", response_model=UserRead, **_user_out)
async def update_user(
    target_id: UserID = Depends(parse_user_id),
    identity: CurrentIdentity = Depends(require_identity),
    body: UserUpdate = Depends(read_user_update),
    repo: UserRepository = Depends(get_user_repository),
):
    logger.info("users.update_requested", actor_id=str(identity.user_id), target_id=str(target_id))
    return await repo.update_user(target_id, body.username, body.email)


@route(router, "DELETE", "/{user_id}", response_model=MessageResponse)
async def delete_user(
    target_id: UserID = Depends(parse_user_id),
    identity: CurrentIdentity = Depends(require_identity),
    repo: UserRepository = Depends(get_user_repository),
):
    logger.info("users.delete_requested", actor_id=str(identity.user_id), target_id=str(target_id))
    await repo.delete_user(target_id)
    return MessageResponse(message="user deleted")
