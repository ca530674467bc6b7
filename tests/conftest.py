"""Pytest configuration and fixtures."""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("STORAGE_BACKEND", "local")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

import taskflow.models  # noqa: E402,F401
from taskflow.database import AsyncSessionLocal, Base, engine, get_db  # noqa: E402
from taskflow.dependencies import get_services  # noqa: E402
from taskflow.main import app  # noqa: E402
from taskflow.models.user import User  # noqa: E402
from taskflow.realtime.connection_manager import ConnectionManager  # noqa: E402
from taskflow.services.cache_service import TaskCache  # noqa: E402
from taskflow.services.container import Services  # noqa: E402
from taskflow.services.storage_service import StorageService  # noqa: E402
from taskflow.utils.security import create_access_token, get_password_hash  # noqa: E402
from tests.fakes import FakeRedis  # noqa: E402

TEST_PASSWORD = "Secret123"


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a test database session."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def make_user(db: AsyncSession, email: str, first_name: str, last_name: str) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(TEST_PASSWORD),
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await make_user(db_session, "alice@example.com", "Alice", "Smith")


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    return await make_user(db_session, "bob@example.com", "Bob", "Jones")


@pytest_asyncio.fixture
async def carol(db_session: AsyncSession) -> User:
    return await make_user(db_session, "carol@example.com", "Carol", "White")


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def services(fake_redis, tmp_path):
    """Service layer wired to in-memory Redis, a temp upload dir and a fresh registry."""
    container = Services(
        cache=TaskCache(fake_redis, default_ttl=300),
        connections=ConnectionManager(),
        storage=StorageService(backend="local", upload_dir=str(tmp_path / "uploads")),
    )
    yield container
    await container.close()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, services: Services):
    """HTTP client over the ASGI app with database and services overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    """Bearer header for ``user``."""
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}
