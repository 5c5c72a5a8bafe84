"""Schema policy — which identity fields exist in this deployment.

Learn: The users table is not fixed. A deployment can drop username or
email (not both) and choose serial or UUID identifiers. Rather than
sprinkle `if require_username:` checks through every query, the policy
publishes one ordered field-descriptor table. Table construction, INSERT
column lists, SELECT/RETURNING lists and response serialization all read
from it, so column order and parameter order come from the same source.

The policy is loaded once at import time and never mutated.
"""

import uuid
from dataclasses import dataclass
from typing import Union

from userbase.config import Settings, settings
from userbase.errors import InvalidInput

ID_TYPES = ("serial", "bigserial", "uuid")

# Largest value the store can hold for each integer id type
ID_MAX = {"serial": 2**31 - 1, "bigserial": 2**63 - 1}

UserID = Union[int, uuid.UUID]


@dataclass(frozen=True)
class UserField:
    """One column of the users table."""

    name: str
    active: bool
    required: bool = False  # must be non-empty on create
    public: bool = True  # serialized in API responses


@dataclass(frozen=True)
class SchemaPolicy:
    require_username: bool = True
    require_email: bool = True
    id_field: str = "serial"

    def __post_init__(self):
        if self.id_field not in ID_TYPES:
            raise ValueError(
                f"Unsupported id field type {self.id_field!r} "
                f"(expected one of {', '.join(ID_TYPES)})"
            )
        if not (self.require_username or self.require_email):
            raise ValueError("Policy must keep at least one of username/email")

    @classmethod
    def from_settings(cls, s: Settings) -> "SchemaPolicy":
        return cls(
            require_username=s.require_username,
            require_email=s.require_email,
            id_field=s.id_field,
        )

    @property
    def fields(self) -> tuple[UserField, ...]:
        """Every column, in table order. Inactive optional fields included."""
        return (
            UserField("id", active=True),
            UserField("username", active=self.require_username, required=True),
            UserField("email", active=self.require_email, required=True),
            UserField("password_hash", active=True, public=False),
            UserField("created_at", active=True, public=False),
        )

    @property
    def active_fields(self) -> tuple[UserField, ...]:
        return tuple(f for f in self.fields if f.active)

    @property
    def identity_fields(self) -> tuple[str, ...]:
        """Active optional identity columns (username and/or email)."""
        return tuple(f.name for f in self.active_fields if f.required)

    @property
    def public_fields(self) -> tuple[str, ...]:
        """Columns that may leave the service: id plus identity columns."""
        return tuple(f.name for f in self.active_fields if f.public)

    @property
    def store_generates_id(self) -> bool:
        return self.id_field != "uuid"

    @property
    def login_field(self) -> str:
        """Column credentials are looked up by. Email wins when present."""
        return "email" if self.require_email else "username"

    def parse_id(self, raw: str) -> UserID:
        """Convert a path segment or token subject into an identifier."""
        if self.id_field == "uuid":
            try:
                return uuid.UUID(raw)
            except (ValueError, TypeError, AttributeError):
                raise InvalidInput("invalid user ID")
        if not isinstance(raw, str) or not raw.isascii() or not raw.isdigit():
            raise InvalidInput("invalid user ID")
        value = int(raw)
        if not 1 <= value <= ID_MAX[self.id_field]:
            raise InvalidInput("invalid user ID")
        return value


# Singleton — fixed for the process lifetime
policy = SchemaPolicy.from_settings(settings)
