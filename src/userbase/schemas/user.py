"""Pydantic schemas for user records.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.

UserRead has no password field at all, so a hash cannot leak through
serialization. Its optional fields are only *set* when the policy has
them; routes use response_model_exclude_unset so inactive fields are
absent from the JSON rather than null.
"""

import uuid
from typing import Optional, Union

from pydantic import BaseModel


class UserCreate(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class UserUpdate(BaseModel):
    username: str = ""
    email: str = ""


class UserRead(BaseModel):
    id: Union[int, uuid.UUID]
    username: Optional[str] = None
    email: Optional[str] = None

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str
