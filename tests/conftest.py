"""
Test infrastructure for the Usuarios API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- ``get_db`` and ``get_store`` are overridden so every request uses the test
  session factory; ``get_identity_provider`` is overridden with a recording
  fake so tests can assert exactly which create / delete calls were made.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.database import Base, RelationalStore, get_db
from app.dependencies import get_identity_provider, get_store
from app.identity import CredentialHandle, IdentityConflictError
from app.main import app
from app.services.provisioning_service import ProvisioningOrchestrator

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Identity provider double
# ---------------------------------------------------------------------------

class FakeIdentityProvider:
    """
    In-memory identity provider that records every call.

    Set ``create_error`` / ``delete_error`` to make the next calls fail.
    Creating an existing uid raises ``IdentityConflictError`` like the real
    provider's DUPLICATE_LOCAL_ID.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, CredentialHandle] = {}
        self.passwords: dict[str, str] = {}
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.create_error: Exception | None = None
        self.delete_error: Exception | None = None

    async def create(self, uid, email, password, display_name):
        self.created.append(uid)
        if self.create_error is not None:
            raise self.create_error
        if uid in self.accounts:
            raise IdentityConflictError("Identifier already in use", code="DUPLICATE_LOCAL_ID")
        handle = CredentialHandle(uid=uid, email=email, display_name=display_name)
        self.accounts[uid] = handle
        self.passwords[uid] = password
        return handle

    async def delete(self, uid):
        self.deleted.append(uid)
        if self.delete_error is not None:
            raise self.delete_error
        self.accounts.pop(uid, None)
        self.passwords.pop(uid, None)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def override_get_store() -> RelationalStore:
    return RelationalStore(async_session_test)


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_store] = override_get_store


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    """A fresh fake provider, also installed as the app's provider."""
    provider = FakeIdentityProvider()
    app.dependency_overrides[get_identity_provider] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_identity_provider, None)


@pytest.fixture
def store() -> RelationalStore:
    return RelationalStore(async_session_test)


@pytest.fixture
def provisioner(store: RelationalStore, identity_provider: FakeIdentityProvider) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(store, identity_provider)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. asserting which rows survived a rollback).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(identity_provider: FakeIdentityProvider) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    The lifespan is not run, so the HTTP identity provider is never opened;
    the ``identity_provider`` fixture supplies the fake instead.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
