"""
Shared test fixtures for the Field Visit Log test suite.

Every test gets its own in-memory SQLite database (aiosqlite), a temporary
media root and a relational backend wired to both.
"""

import os
import sys
import tempfile
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["BACKEND"] = "sql"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="fieldlog-media-")
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key-for-the-suite-only"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_backend, get_session_store
from app.backends.base import Backend
from app.backends.factory import build_sql_backend
from app.db.base import Base
from app.main import app
from app.schemas.user import UserRole
from app.services.session import SessionStore

PHOTO_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64  # JPEG magic + padding
ADMIN_ID, ADMIN_NAME, ADMIN_PASSWORD = "ADM-001", "Alice Admin", "admin-pass"
USER_ID, USER_NAME, USER_PASSWORD = "EMP-001", "John Doe", "user-pass"


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def media_root(tmp_path):
    return tmp_path / "media"


@pytest.fixture
async def backend(session_factory, media_root) -> AsyncGenerator[Backend, None]:
    b = build_sql_backend(session_factory, media_root, "http://test/media")
    yield b
    await b.aclose()


@pytest.fixture
def session_store(backend: Backend) -> SessionStore:
    return SessionStore(backend.auth, backend.identity)


@pytest.fixture
async def async_client(backend: Backend, session_store: SessionStore) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app and the test backend."""
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_session_store] = lambda: session_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ── Accounts ────────────────────────────────────────────────────────
@pytest.fixture
async def admin_account(backend: Backend):
    return await backend.identity.create_employee(
        ADMIN_ID, ADMIN_NAME, ADMIN_PASSWORD, UserRole.ADMIN
    )


@pytest.fixture
async def user_account(backend: Backend):
    return await backend.identity.create_employee(
        USER_ID, USER_NAME, USER_PASSWORD, UserRole.USER
    )


@pytest.fixture
async def admin_headers(backend: Backend, admin_account) -> dict[str, str]:
    session = await backend.identity.employee_login(ADMIN_ID, ADMIN_PASSWORD)
    return {"Authorization": f"Bearer {session.access_token}"}


@pytest.fixture
async def user_headers(backend: Backend, user_account) -> dict[str, str]:
    session = await backend.identity.employee_login(USER_ID, USER_PASSWORD)
    return {"Authorization": f"Bearer {session.access_token}"}
