"""
Provider capability set shared by every backend.

A backend supplies four collaborating pieces:

- ``AuthProvider``: email/password accounts, tokens and an auth-state stream.
- ``IdentityResolver``: employee-ID login and account provisioning on top of
  the auth provider plus the profile store.
- ``ReportRepository``: create / list / filter visit reports.
- ``BlobUploader``: stores one photo and returns its public URL.

The flows (employee login, provisioning with compensation, submit-with-photo)
live here once; subclasses only implement the storage primitives for their
own schema. A process selects exactly one backend at start-up.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError
from app.schemas.report import PhotoFile, Report, ReportFormData
from app.schemas.token import AuthSession, Principal
from app.schemas.user import UserAccount, UserRole

logger = logging.getLogger(__name__)

# Per-subscriber backlog; a subscriber that stops reading loses the oldest entries.
SUBSCRIBER_BACKLOG = 64


def offer_latest(queue: asyncio.Queue, item: object) -> None:
    """Enqueue *item*, evicting the oldest entry when the queue is full."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(item)


# ── Auth ────────────────────────────────────────────────────────────
class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class AuthStateEvent:
    event: AuthEvent
    session: AuthSession | None


class AuthProvider(ABC):
    """Password auth plus the process-local current session."""

    def __init__(self) -> None:
        self._session: AuthSession | None = None
        self._listeners: set[asyncio.Queue[AuthStateEvent]] = set()

    # Provider primitives
    @abstractmethod
    async def _authenticate(self, email: str, password: str) -> AuthSession: ...

    @abstractmethod
    async def _create_account(
        self, email: str, password: str, display_name: str | None
    ) -> Principal: ...

    @abstractmethod
    async def _revoke_tokens(self, account_id: str) -> None: ...

    @abstractmethod
    async def _set_display_name(self, account_id: str, display_name: str) -> Principal: ...

    @abstractmethod
    async def verify_token(self, token: str) -> Principal:
        """Return the principal of a valid token or raise ``AuthenticationError``."""

    @abstractmethod
    async def delete_account(self, account_id: str) -> None: ...

    async def aclose(self) -> None:
        """Release transport resources; a no-op for most providers."""

    # Session lifecycle
    async def get_session(self) -> AuthSession | None:
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = await self._authenticate(email, password)
        self._publish(AuthEvent.SIGNED_IN, session)
        logger.info("Signed in %s", email)
        return session

    async def sign_up(
        self, email: str, password: str, display_name: str | None = None
    ) -> Principal:
        principal = await self._create_account(email, password, display_name)
        logger.info("Created auth account %s for %s", principal.account_id, email)
        return principal

    async def sign_out(self, principal: Principal | None = None) -> None:
        current = self._session.user if self._session else None
        target = principal or current
        if target is None:
            return
        await self._revoke_tokens(target.account_id)
        if current is not None and current.account_id == target.account_id:
            self._publish(AuthEvent.SIGNED_OUT, None)
        logger.info("Signed out account %s", target.account_id)

    async def update_profile(self, account_id: str, display_name: str) -> Principal:
        principal = await self._set_display_name(account_id, display_name)
        if self._session is not None and self._session.user.account_id == account_id:
            self._publish(
                AuthEvent.USER_UPDATED,
                self._session.model_copy(update={"user": principal}),
            )
        return principal

    async def auth_state_changes(self) -> AsyncIterator[AuthStateEvent]:
        """Yield ``INITIAL_SESSION`` first, then every state change in order."""
        queue: asyncio.Queue[AuthStateEvent] = asyncio.Queue(maxsize=SUBSCRIBER_BACKLOG)
        self._listeners.add(queue)
        try:
            yield AuthStateEvent(AuthEvent.INITIAL_SESSION, self._session)
            while True:
                yield await queue.get()
        finally:
            self._listeners.discard(queue)

    def _publish(self, event: AuthEvent, session: AuthSession | None) -> None:
        self._session = session
        state = AuthStateEvent(event, session)
        for queue in list(self._listeners):
            offer_latest(queue, state)


# ── Identity ────────────────────────────────────────────────────────
def employee_email(employee_id: str) -> str:
    """Deterministic login email for an employee ID."""
    return f"{employee_id.lower()}@{settings.EMPLOYEE_EMAIL_DOMAIN}"


class IdentityResolver(ABC):
    """Maps employee IDs to accounts and provisions new ones."""

    def __init__(self, auth: AuthProvider) -> None:
        self.auth = auth

    # Profile store primitives
    @abstractmethod
    async def find_by_employee_id(self, employee_id: str) -> UserAccount | None: ...

    @abstractmethod
    async def get_account(self, account_id: str) -> UserAccount | None: ...

    @abstractmethod
    async def _insert_account(self, account: UserAccount) -> UserAccount: ...

    # Operations
    async def employee_login(self, employee_id: str, password: str) -> AuthSession:
        account = await self.find_by_employee_id(employee_id)
        if account is None:
            raise NotFoundError("Employee ID not found")
        if not account.email:
            raise ConflictError("Employee account is not properly configured")
        return await self.auth.sign_in_with_password(account.email, password)

    async def create_employee(
        self, employee_id: str, name: str, password: str, role: UserRole
    ) -> UserAccount:
        if await self.find_by_employee_id(employee_id) is not None:
            raise ConflictError("Employee ID already exists")
        email = employee_email(employee_id)
        principal = await self.auth.sign_up(email, password, display_name=name)
        account = UserAccount(
            account_id=principal.account_id,
            employee_id=employee_id,
            name=name,
            email=email,
            role=role,
            created_at=datetime.now(timezone.utc),
        )
        created = await self._insert_profile_or_rollback(account)
        logger.info("Employee %s provisioned with role %s", employee_id, role.value)
        return created

    async def login(self, email: str, password: str) -> AuthSession:
        return await self.auth.sign_in_with_password(email, password)

    async def signup(self, email: str, password: str) -> UserAccount:
        principal = await self.auth.sign_up(email, password)
        account = UserAccount(
            account_id=principal.account_id,
            email=email,
            role=UserRole.USER,
            created_at=datetime.now(timezone.utc),
        )
        return await self._insert_profile_or_rollback(account)

    async def logout(self, principal: Principal | None = None) -> None:
        await self.auth.sign_out(principal)

    async def _insert_profile_or_rollback(self, account: UserAccount) -> UserAccount:
        """Write the profile row; on failure delete the orphaned auth account."""
        try:
            return await self._insert_account(account)
        except Exception:
            logger.error(
                "Profile write failed for account %s; removing auth account",
                account.account_id,
            )
            try:
                await self.auth.delete_account(account.account_id)
            except Exception:
                logger.exception(
                    "Compensating delete failed; account %s is orphaned",
                    account.account_id,
                )
            raise


# ── Blobs ───────────────────────────────────────────────────────────
class BlobUploader(ABC):
    @abstractmethod
    async def upload_image(self, file: PhotoFile, path: str) -> str:
        """Store *file* at *path* and return a publicly resolvable URL."""

    @staticmethod
    def photo_path(filename: str, now: float | None = None) -> str:
        """``reports/<epoch-millis>_<original filename>``."""
        millis = int((time.time() if now is None else now) * 1000)
        basename = PurePosixPath(filename.replace("\\", "/")).name
        return f"reports/{millis}_{basename}"


# ── Reports ─────────────────────────────────────────────────────────
class ReportRepository(ABC):
    def __init__(self, auth: AuthProvider, uploader: BlobUploader) -> None:
        self.auth = auth
        self.uploader = uploader

    @abstractmethod
    async def _insert_report(
        self, form: ReportFormData, photo_url: str, owner_id: str | None
    ) -> Report: ...

    @abstractmethod
    async def get_reports(self) -> list[Report]: ...

    @abstractmethod
    async def get_reports_by_user(self, user_name: str) -> list[Report]: ...

    @abstractmethod
    async def _query_date_range(self, start: datetime, end: datetime) -> list[Report]: ...

    async def submit_report(
        self,
        form: ReportFormData,
        photo: PhotoFile | None = None,
        owner_id: str | None = None,
    ) -> Report:
        photo_url = ""
        if photo is not None:
            path = self.uploader.photo_path(photo.filename)
            photo_url = await self.uploader.upload_image(photo, path)

        if owner_id is None:
            session = await self.auth.get_session()
            owner_id = session.user.account_id if session else None

        report = await self._insert_report(form, photo_url, owner_id)
        logger.info("Report %s submitted by %s", report.id, report.user_name)
        return report

    async def get_reports_by_date_range(self, start: datetime, end: datetime) -> list[Report]:
        return await self._query_date_range(as_utc(start), as_utc(end))


def as_utc(dt: datetime) -> datetime:
    """Naive bounds are read as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ── Bundle ──────────────────────────────────────────────────────────
@dataclass
class Backend:
    """The capability set a process was configured with."""

    name: str
    auth: AuthProvider
    identity: IdentityResolver
    reports: ReportRepository
    uploader: BlobUploader

    async def aclose(self) -> None:
        await self.auth.aclose()
