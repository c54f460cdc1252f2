"""
Test infrastructure for the Newsroom API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- A test :class:`Database` is attached to ``app.state.database`` so the
  real ``get_db`` dependency (commit on success, rollback on error) is
  exercised unchanged.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- bcrypt runs at its minimum cost factor so password hashing does not
  dominate the suite's runtime.
"""
from typing import Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from newsroom.config import settings
from newsroom.database import Base, Database
from newsroom.main import app
from newsroom.models import Role, User
from newsroom.rate_limit import limiter
from newsroom.security import hash_password

settings.BCRYPT_ROUNDS = 4

DEFAULT_PASSWORD = "secret123"

# ---------------------------------------------------------------------------
# Test database: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_database = Database(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
test_database.open()


@event.listens_for(test_database.engine.sync_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # ON DELETE CASCADE / SET NULL are only honoured with this pragma.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


app.state.database = test_database


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """
    Create all tables before each test, drop after to guarantee isolation.
    Rate-limit counters are cleared too; every test client shares one IP.
    """
    limiter.reset()
    async with test_database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call service functions
    directly.  Nothing is committed unless the test commits.
    """
    async with test_database.sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def client_factory():
    """
    Build additional independent clients (separate cookie jars), e.g. to
    act as two browsers or as an attacker replaying a stolen cookie.
    """
    clients: list[AsyncClient] = []

    def factory() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def make_user() -> Callable[..., Awaitable[User]]:
    """Insert a user directly into the store and return it."""

    async def _make_user(
        email: str,
        role: Role = Role.USER,
        name: str = "Test User",
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        async with test_database.session() as session:
            user = User(email=email, name=name, role=role, password_hash=hash_password(password))
            session.add(user)
            await session.flush()
        return user

    return _make_user


@pytest_asyncio.fixture
async def login_as(async_client: AsyncClient, make_user):
    """
    Create a user with *role* and log *client* (default: ``async_client``)
    in as that user.  Returns the created User.
    """

    async def _login_as(
        role: Role, email: str | None = None, client: AsyncClient | None = None
    ) -> User:
        client = client or async_client
        email = email or f"{role.value.lower()}@example.com"
        user = await make_user(email, role=role, name=f"{role.value.title()} Person")
        resp = await client.post(
            "/api/auth/login", json={"email": email, "password": DEFAULT_PASSWORD}
        )
        assert resp.status_code == 200, resp.text
        return user

    return _login_as
