"""
Field Visit Log: Application entry point.

This is the **only** file that assembles the app.  All provider logic
lives in the `backends/` package; `api/` only adapts it to HTTP.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.api import api_router
from app.api.v1.endpoints.auth import limiter
from app.backends.base import Backend
from app.backends.factory import build_backend
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.db.base import Base
from app.db.session import create_engine, create_session_factory

# Ensure all models are imported so metadata.create_all can see them
from app.models.report import ReportRow  # noqa: F401
from app.models.user import AuthAccount, UserProfile  # noqa: F401
from app.schemas.user import UserRole
from app.services.session import SessionStore

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_first_admin(backend: Backend) -> None:
    """Provision the first admin employee when it does not exist yet."""
    if await backend.identity.find_by_employee_id(settings.FIRST_ADMIN_EMPLOYEE_ID):
        return
    await backend.identity.create_employee(
        settings.FIRST_ADMIN_EMPLOYEE_ID,
        settings.FIRST_ADMIN_NAME,
        settings.FIRST_ADMIN_PASSWORD,
        UserRole.ADMIN,
    )
    logger.info(
        "Default admin created: %s (password: <redacted>)",
        settings.FIRST_ADMIN_EMPLOYEE_ID,
    )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = None
    session_factory = None
    if settings.BACKEND == "sql":
        engine = create_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialised")
        session_factory = create_session_factory(engine)

    backend = build_backend(settings, session_factory)
    await seed_first_admin(backend)

    session_store = SessionStore(backend.auth, backend.identity)
    session_store.start()

    app.state.backend = backend
    app.state.session_store = session_store
    logger.info("🚀 %s v%s started (%s backend)", settings.PROJECT_NAME, settings.VERSION, backend.name)
    yield

    await session_store.stop()
    await backend.aclose()
    if engine is not None:
        await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Out-of-office visit reports for field staff",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Login rate limiting
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Uploaded photos of the relational backend
    if settings.BACKEND == "sql":
        media_dir = Path(settings.MEDIA_ROOT)
        media_dir.mkdir(parents=True, exist_ok=True)
        application.mount(
            settings.MEDIA_URL_PREFIX,
            StaticFiles(directory=str(media_dir)),
            name="media",
        )
        logger.info("Media mounted from %s", media_dir.resolve())

    return application


app = create_app()
