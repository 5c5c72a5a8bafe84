"""Test fixtures — a throwaway SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Environment is set *before* userbase is imported, because settings,
   the schema policy and the users table are all built at import time.
2. API tests get a fresh users table (drop_all + create_all) and an
   engine of their own; the app's get_db is overridden to use it.
3. Repository tests build their own table from whatever SchemaPolicy
   they need, in a SQLite file under tmp_path.

SQLite engines here open every transaction with BEGIN IMMEDIATE, so two
concurrent writers queue on the database lock instead of deadlocking —
the same guarantee the unique constraint relies on in Postgres.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="userbase-tests-")
os.environ.setdefault(
    "USERBASE_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'api.db')}",
)
os.environ.setdefault("USERBASE_BCRYPT_ROUNDS", "4")
os.environ.setdefault("USERBASE_JWT_SECRET", "test-secret-0123456789abcdef0123456789")
os.environ.setdefault("USERBASE_REQUIRE_USERNAME", "true")
os.environ.setdefault("USERBASE_REQUIRE_EMAIL", "true")
os.environ.setdefault("USERBASE_ID_FIELD", "serial")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from userbase.auth.dependencies import CurrentIdentity, require_identity  # noqa: E402
from userbase.auth.password import CredentialHasher  # noqa: E402
from userbase.config import settings  # noqa: E402
from userbase.db import engine as app_engine  # noqa: E402
from userbase.db.engine import build_engine, get_db  # noqa: E402
from userbase.db.tables import build_users_table, metadata  # noqa: E402
from userbase.main import app  # noqa: E402
from userbase.users.policy import SchemaPolicy  # noqa: E402
from userbase.users.repository import UserRepository  # noqa: E402

TEST_DB_URL = settings.database_url


def sqlite_engine(path):
    """File-backed aiosqlite engine whose transactions take the write lock up front."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}")

    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


@pytest_asyncio.fixture()
async def db_engine():
    """Engine with a freshly created users table for the app's policy."""
    engine = build_engine(TEST_DB_URL)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.drop_all)
        await engine.dispose()
        # The health check uses the app's own engine; don't carry its
        # pooled connections over to the next test's event loop.
        await app_engine.engine.dispose()


def _override_db(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    return override_get_db


@pytest_asyncio.fixture()
async def client(db_engine):
    """HTTP client with get_db and auth overridden for testing.

    Learn: We override require_identity to return a fixed identity so all
    protected routes work without real tokens. Auth behaviour itself is
    covered with `unauthenticated_client`.
    """

    def override_require_identity():
        return CurrentIdentity(user_id=1)

    app.dependency_overrides[get_db] = _override_db(db_engine)
    app.dependency_overrides[require_identity] = override_require_identity

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(db_engine):
    """HTTP client WITHOUT auth override — the real gate runs."""
    app.dependency_overrides[get_db] = _override_db(db_engine)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def auth_headers(unauthenticated_client):
    """Register alice, log her in, return her Authorization header."""
    await unauthenticated_client.post(
        "/api/users",
        json={"username": "alice", "email": "a@x.com", "password": "secret"},
    )
    r = await unauthenticated_client.post(
        "/api/auth/login",
        json={"email": "a@x.com", "password": "secret"},
    )
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest_asyncio.fixture()
async def make_repo(tmp_path):
    """Factory: a UserRepository on its own SQLite file for any policy.

    Calling it twice with the same `name` gives two repositories (two
    engines, two sessions) over the same database.
    """
    engines = []
    sessions = []

    async def _make(schema: SchemaPolicy = SchemaPolicy(), name: str = "users"):
        engine = sqlite_engine(tmp_path / f"{name}.db")
        table = build_users_table(schema)
        async with engine.begin() as conn:
            await conn.run_sync(table.metadata.create_all)
        session = AsyncSession(engine, expire_on_commit=False)
        engines.append(engine)
        sessions.append(session)
        return UserRepository(
            session,
            schema=schema,
            table=table,
            hasher=CredentialHasher(rounds=4),
        )

    yield _make

    for session in sessions:
        await session.close()
    for engine in engines:
        await engine.dispose()
