"""SQLAlchemy Core table for users — assembled from the schema policy.

Learn: Tables with a static schema use declarative ORM classes. Here the
column set is only known at startup (username/email may be switched off,
the id may be serial or UUID), so the table is built as a Core `Table`
from the policy's field table. Anything that needs a column (the
repository, tests, create_all) takes it from the Table object, never
from a hard-coded name list.

Key concepts:
- Named unique constraints (uq_users_username / uq_users_email) so a
  violation can be attributed to a field without reading error text
- created_at has a server_default so raw SQL inserts still work
"""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    Uuid,
    func,
)

from userbase.users.policy import SchemaPolicy, policy

USERS_TABLE = "users"

_LENGTHS = {"username": 50, "email": 255}


def _id_column(id_field: str) -> Column:
    if id_field == "uuid":
        return Column("id", Uuid(as_uuid=True), primary_key=True)
    if id_field == "bigserial":
        # SQLite only autoincrements INTEGER PRIMARY KEY
        id_type = BigInteger().with_variant(Integer, "sqlite")
        return Column("id", id_type, primary_key=True, autoincrement=True)
    return Column("id", Integer, primary_key=True, autoincrement=True)


def unique_constraint_name(field: str) -> str:
    return f"uq_{USERS_TABLE}_{field}"


def build_users_table(
    schema: SchemaPolicy, metadata: MetaData | None = None
) -> Table:
    """Build the users Table for a policy.

    Column order follows SchemaPolicy.fields, skipping inactive fields.
    """
    metadata = metadata if metadata is not None else MetaData()
    columns: list = []
    constraints: list = []

    for field in schema.active_fields:
        if field.name == "id":
            columns.append(_id_column(schema.id_field))
        elif field.name in _LENGTHS:
            columns.append(
                Column(field.name, String(_LENGTHS[field.name]), nullable=False)
            )
            constraints.append(
                UniqueConstraint(field.name, name=unique_constraint_name(field.name))
            )
        elif field.name == "password_hash":
            columns.append(Column("password_hash", LargeBinary, nullable=False))
        elif field.name == "created_at":
            columns.append(
                Column(
                    "created_at",
                    DateTime(timezone=True),
                    nullable=False,
                    server_default=func.now(),
                )
            )

    return Table(USERS_TABLE, metadata, *columns, *constraints)


# Process-wide table, matching the process-wide policy
metadata = MetaData()
users = build_users_table(policy, metadata)
