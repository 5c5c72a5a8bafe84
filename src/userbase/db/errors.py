"""Structured classification of storage constraint failures.

Learn: The quick way to detect a duplicate email is to search the
driver's message for "duplicate key". That breaks the day the driver
rewords it. Both drivers we run on expose a machine-readable code:
- asyncpg (via SQLAlchemy's adapter): `sqlstate == "23505"` and the
  violated constraint's name
- sqlite3 (Python 3.11+): `sqlite_errorname == "SQLITE_CONSTRAINT_UNIQUE"`
We only look at those attributes.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

PG_UNIQUE_VIOLATION = "23505"
SQLITE_UNIQUE_VIOLATION = "SQLITE_CONSTRAINT_UNIQUE"
SQLITE_PRIMARY_KEY_VIOLATION = "SQLITE_CONSTRAINT_PRIMARYKEY"


@dataclass(frozen=True)
class ConstraintViolation:
    """A unique constraint was violated. `constraint` is None when unknown."""

    constraint: Optional[str] = None


def _driver_errors(exc: IntegrityError):
    """Yield the DBAPI error and whatever it wraps (asyncpg's original)."""
    seen = set()
    err = exc.orig
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def classify_integrity_error(exc: IntegrityError) -> Optional[ConstraintViolation]:
    """Return a ConstraintViolation for unique/PK conflicts, else None."""
    for err in _driver_errors(exc):
        if getattr(err, "sqlstate", None) == PG_UNIQUE_VIOLATION:
            return ConstraintViolation(getattr(err, "constraint_name", None))
        if getattr(err, "sqlite_errorname", None) in (
            SQLITE_UNIQUE_VIOLATION,
            SQLITE_PRIMARY_KEY_VIOLATION,
        ):
            return ConstraintViolation()
    return None
