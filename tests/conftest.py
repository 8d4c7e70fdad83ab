import os

# Must be set before petfinder.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OTEL_ENABLED"] = "false"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from petfinder.clients.api_client import PetFinderClient  # noqa: E402
from petfinder.database import Base, get_db  # noqa: E402
from petfinder.main import app  # noqa: E402
from petfinder.storage import DatabaseStorage  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'petfinder.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def storage(session_factory):
    async with session_factory() as session:
        yield DatabaseStorage(session)


@pytest_asyncio.fixture
async def api(session_factory):
    """HTTP client wired to the app, with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def petfinder_client(api):
    """PetFinderClient talking to the in-process app (shares api's DB override)."""
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    client = PetFinderClient(base_url="http://test/api", transport=transport)
    await client.start()
    yield client
    await client.stop()
