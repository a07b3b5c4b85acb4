"""Shared fixtures: in-memory SQLite, fake provider service, mocked storage."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

# Must be set before beluva.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_PUBLIC_BASE_URL", "https://cdn.test")
os.environ.setdefault("ENVIRONMENT", "development")

import httpx
import pytest
from factories import make_user, png_data_url
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from beluva.auth import get_current_user
from beluva.database import get_db
from beluva.main import app
from beluva.models.db import Base, User
from beluva.providers.base import ImageResult, TextResult
from beluva.providers.service import LLMService
from beluva.utils import storage


def _enable_savepoints(engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs work on aiosqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _enable_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


@pytest.fixture
async def user(db_session) -> User:
    user = await make_user(db_session)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session) -> User:
    user = await make_user(db_session, name="Riley")
    await db_session.commit()
    return user


@pytest.fixture
async def admin(db_session) -> User:
    user = await make_user(db_session, is_admin=True, name="Admin")
    await db_session.commit()
    return user


@pytest.fixture
def fake_llm() -> MagicMock:
    """LLMService double: anthropic active, canned text and image results."""
    llm = MagicMock(spec=LLMService)
    llm.provider_name = "anthropic"
    llm.analyze_image = AsyncMock(
        return_value=TextResult(text='{"recommendations": []}', provider="anthropic")
    )
    llm.complete_text = AsyncMock(return_value=TextResult(text="ok", provider="anthropic"))
    llm.generate_image = AsyncMock(
        return_value=ImageResult(image_url=png_data_url(), provider="gemini")
    )
    return llm


@pytest.fixture
def mock_s3():
    """Mocked boto3 client behind beluva.utils.storage."""
    storage.reset_client()
    with patch.object(storage, "_build_client") as mock_build:
        mock_client = MagicMock()
        mock_build.return_value = mock_client
        yield mock_client
    storage.reset_client()


@pytest.fixture
async def anon_client(db_session, fake_llm, mock_s3):
    """Client on the test database and fake providers, with no auth override."""

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.state.llm = fake_llm
    # Unhandled errors are still answered by the app's 500 handler
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def client(anon_client, user):
    """Client authenticated as ``user``."""
    app.dependency_overrides[get_current_user] = lambda: user
    return anon_client


@pytest.fixture
async def admin_client(anon_client, admin):
    """Client authenticated as ``admin``."""
    app.dependency_overrides[get_current_user] = lambda: admin
    return anon_client
