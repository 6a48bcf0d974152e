"""
Test infrastructure for the Pixshare API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres; StaticPool makes every
  session share the one connection that holds the in-memory database.
- ``get_db`` is overridden so HTTP requests use the test session factory.
- All tables are created before each test and dropped after it.
- ``get_blob_store`` is overridden with ``InMemoryBlobStore``, which keeps
  uploaded media in a dict and can be told to fail.
- Redis is disabled (``cache._redis = None``); the cache then no-ops and
  every read goes to the database.  ``test_cache.py`` swaps in fakeredis.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from pixshare.blob_store import public_url
from pixshare.cache import cache
from pixshare.database import Base, get_db
from pixshare.dependencies import get_blob_store
from pixshare.errors import BlobStoreError
from pixshare.main import app

TEST_BUCKET = "pixshare-test"

# ---------------------------------------------------------------------------
# Test database engine - SQLite in-memory with aiosqlite
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


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise
        await cache.invalidate_committed(session)


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Blob store fake
# ---------------------------------------------------------------------------

class InMemoryBlobStore:
    """Blob store keeping objects in memory; set ``fail_*`` to simulate outages."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str | None] = {}
        self.acls: dict[str, str] = {}
        self.deleted: list[str] = []
        self.fail_uploads = False
        self.fail_deletes = False

    async def upload(self, key, stream, content_type, acl) -> str:
        if self.fail_uploads:
            raise BlobStoreError("Error uploading file to S3: simulated outage")
        self.objects[key] = stream.read()
        self.content_types[key] = content_type
        self.acls[key] = acl
        return public_url(TEST_BUCKET, key)

    async def delete(self, key) -> None:
        if self.fail_deletes:
            raise BlobStoreError("Failed to delete the file from S3: simulated outage")
        self.objects.pop(key, None)
        self.deleted.append(key)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for tests that call services directly."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    store = InMemoryBlobStore()
    app.dependency_overrides[get_blob_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_blob_store, None)


@pytest_asyncio.fixture
async def async_client(blob_store: InMemoryBlobStore) -> AsyncClient:
    """An httpx.AsyncClient wired to the app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
