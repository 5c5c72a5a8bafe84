"""User repository — every SQL statement that touches the users table.

Learn: Service layer separates business logic from HTTP routing.
API routes call the repository, the repository calls the database.

Column lists are never written out by hand. Each statement asks the
schema policy which fields are active and takes the matching Column
objects from the Table. Values are passed to SQLAlchemy as a
{column name: value} mapping built in a single loop over the field table,
so the column list and the bound parameters cannot drift apart.

Storage errors are classified here and nowhere else:
- unique violations → UserExists
- everything else   → InternalServerError (details go to the log only)
"""

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import Depends
from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from userbase.auth.password import CredentialHasher, hasher as default_hasher
from userbase.db.engine import get_db
from userbase.db.errors import classify_integrity_error
from userbase.db.tables import users as users_table
from userbase.errors import (
    InternalServerError,
    InvalidCredentials,
    InvalidInput,
    UserExists,
    UserNotFound,
)
from userbase.schemas.user import UserRead
from userbase.users.policy import SchemaPolicy, UserID, policy as default_policy

logger = structlog.get_logger()


class UserRepository:
    """CRUD + credential verification for user records."""

    def __init__(
        self,
        db: AsyncSession,
        schema: SchemaPolicy = default_policy,
        table: Table = users_table,
        hasher: CredentialHasher = default_hasher,
    ):
        self.db = db
        self.schema = schema
        self.table = table
        self.hasher = hasher

    # ─── Statement helpers ──────────────────────────────

    @property
    def public_columns(self) -> list:
        return [self.table.c[name] for name in self.schema.public_fields]

    def _to_user(self, row) -> UserRead:
        mapping = row._mapping
        return UserRead(**{name: mapping[name] for name in self.schema.public_fields})

    def build_insert(
        self,
        username: str,
        email: str,
        password_hash: bytes,
        created_at: datetime,
    ):
        """INSERT ... RETURNING for one user, shaped by the policy."""
        supplied: dict[str, Any] = {
            "username": username,
            "email": email,
            "password_hash": password_hash,
            "created_at": created_at,
        }
        values: dict[str, Any] = {}
        for field in self.schema.active_fields:
            if field.name == "id":
                if not self.schema.store_generates_id:
                    values["id"] = uuid.uuid4()
                continue
            values[field.name] = supplied[field.name]

        return insert(self.table).values(values).returning(*self.public_columns)

    async def _read(self, stmt: Executable):
        try:
            return await self.db.execute(stmt)
        except SQLAlchemyError:
            logger.exception("users.storage_error")
            raise InternalServerError()

    async def _write(self, stmt: Executable, returning: bool = True):
        """Execute a write and commit. Returns the first row, or the rowcount."""
        try:
            result = await self.db.execute(stmt)
            outcome = result.first() if returning else result.rowcount
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            violation = classify_integrity_error(e)
            if violation is None:
                logger.exception("users.storage_error")
                raise InternalServerError()
            logger.info("users.conflict", constraint=violation.constraint)
            raise UserExists()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("users.storage_error")
            raise InternalServerError()
        return outcome

    # ─── Create ─────────────────────────────────────────

    async def create_user(self, username: str, email: str, password: str) -> UserRead:
        supplied = {"username": username, "email": email}
        for name in self.schema.identity_fields:
            if not supplied[name]:
                raise InvalidInput(f"{name} is required")
        if not password:
            raise InvalidInput("password is required")

        password_hash = self.hasher.hash(password)
        stmt = self.build_insert(
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        row = await self._write(stmt)
        user = self._to_user(row)
        logger.info("users.created", user_id=str(user.id))
        return user

    # ─── Read ───────────────────────────────────────────

    async def get_user_by_id(self, user_id: UserID) -> UserRead:
        stmt = select(*self.public_columns).where(self.table.c.id == user_id)
        row = (await self._read(stmt)).first()
        if row is None:
            raise UserNotFound()
        return self._to_user(row)

    async def get_users(self) -> list[UserRead]:
        stmt = select(*self.public_columns).order_by(self.table.c.id)
        result = await self._read(stmt)
        return [self._to_user(row) for row in result.all()]

    # ─── Verify ─────────────────────────────────────────

    async def verify_user(self, login: str, password: str) -> UserRead:
        """Check credentials. Unknown login and wrong password look identical."""
        row = None
        if login:
            column = self.table.c[self.schema.login_field]
            stmt = select(self.table.c.password_hash, *self.public_columns).where(
                column == login
            )
            row = (await self._read(stmt)).first()

        if row is None:
            # Burn the same bcrypt time as a real comparison
            self.hasher.verify(self.hasher.dummy_digest, password)
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        if not self.hasher.verify(row.password_hash, password):
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        return self._to_user(row)

    # ─── Update ─────────────────────────────────────────

    async def update_user(self, user_id: UserID, username: str, email: str) -> UserRead:
        """Partial update of username/email. At least one must be supplied.

        Fields the policy does not have are ignored. An update with nothing
        left to change is refused rather than treated as a no-op.
        """
        supplied = {"username": username, "email": email}
        changes = {
            name: supplied[name]
            for name in self.schema.identity_fields
            if supplied[name]
        }
        if not changes:
            raise InternalServerError("no fields to update")

        stmt = (
            update(self.table)
            .where(self.table.c.id == user_id)
            .values(changes)
            .returning(*self.public_columns)
        )
        row = await self._write(stmt)
        if row is None:
            raise UserNotFound()
        logger.info("users.updated", user_id=str(user_id), fields=sorted(changes))
        return self._to_user(row)

    # ─── Delete ─────────────────────────────────────────

    async def delete_user(self, user_id: UserID) -> None:
        stmt = delete(self.table).where(self.table.c.id == user_id)
        affected = await self._write(stmt, returning=False)
        if affected == 0:
            raise UserNotFound()
        logger.info("users.deleted", user_id=str(user_id))


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    """FastAPI dependency — a repository bound to this request's session."""
    return UserRepository(db)
