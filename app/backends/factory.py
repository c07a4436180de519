"""
Builds the one backend a process is configured with.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.backends.base import Backend
from app.core.config import Settings

logger = logging.getLogger(__name__)


def build_sql_backend(
    session_factory: async_sessionmaker[AsyncSession],
    media_root: str | Path,
    public_url: str,
) -> Backend:
    from app.backends.sql.auth import SqlAuthProvider
    from app.backends.sql.identity import SqlIdentityResolver
    from app.backends.sql.reports import SqlReportRepository
    from app.backends.sql.storage import LocalBlobUploader

    auth = SqlAuthProvider(session_factory)
    uploader = LocalBlobUploader(media_root, public_url)
    return Backend(
        name="sql",
        auth=auth,
        identity=SqlIdentityResolver(auth, session_factory),
        reports=SqlReportRepository(auth, uploader, session_factory),
        uploader=uploader,
    )


def build_firebase_backend(settings: Settings) -> Backend:
    # Imported lazily so the sql backend never initialises the Firebase SDK.
    from app.backends.firebase.auth import FirebaseAuthProvider
    from app.backends.firebase.client import initialize_firebase
    from app.backends.firebase.identity import FirestoreIdentityResolver
    from app.backends.firebase.reports import FirestoreReportRepository
    from app.backends.firebase.storage import CloudStorageUploader

    client = initialize_firebase(settings)
    auth = FirebaseAuthProvider(client)
    uploader = CloudStorageUploader(client)
    return Backend(
        name="firebase",
        auth=auth,
        identity=FirestoreIdentityResolver(auth, client),
        reports=FirestoreReportRepository(auth, uploader, client),
        uploader=uploader,
    )


def build_backend(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> Backend:
    logger.info("Configuring %s backend", settings.BACKEND)
    if settings.BACKEND == "firebase":
        return build_firebase_backend(settings)
    if session_factory is None:
        raise RuntimeError("The sql backend needs a session factory")
    return build_sql_backend(
        session_factory,
        settings.MEDIA_ROOT,
        f"{settings.PUBLIC_BASE_URL.rstrip('/')}{settings.MEDIA_URL_PREFIX}",
    )
