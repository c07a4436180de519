"""
Relational auth provider: bcrypt password accounts and JWT access tokens.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.backends.base import AuthProvider
from app.core.exceptions import (AuthenticationError, ConflictError,
                                 NotFoundError, TransportError)
from app.core.security import (create_access_token, decode_access_token,
                               get_password_hash, verify_password)
from app.models.user import AuthAccount
from app.schemas.token import AuthSession, Principal

logger = logging.getLogger(__name__)


def _principal(account: AuthAccount) -> Principal:
    return Principal(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
    )


class SqlAuthProvider(AuthProvider):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__()
        self._session_factory = session_factory

    async def _authenticate(self, email: str, password: str) -> AuthSession:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(AuthAccount).where(AuthAccount.email == email.strip().lower())
                )
                account = result.scalar_one_or_none()
                if account is None or not verify_password(password, account.hashed_password):
                    raise AuthenticationError("Invalid login credentials")
                account.last_sign_in_at = datetime.now(timezone.utc)
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Sign-in query failed: %s", exc)
            raise TransportError("Authentication service unavailable") from exc

        token, expires_at = create_access_token(
            account.id,
            {"email": account.email, "name": account.display_name, "ver": account.token_version},
        )
        return AuthSession(access_token=token, expires_at=expires_at, user=_principal(account))

    async def _create_account(
        self, email: str, password: str, display_name: str | None
    ) -> Principal:
        account = AuthAccount(
            email=email.strip().lower(),
            hashed_password=get_password_hash(password),
            display_name=display_name,
        )
        try:
            async with self._session_factory() as db:
                db.add(account)
                await db.commit()
                await db.refresh(account)
        except IntegrityError as exc:
            raise ConflictError("User already registered") from exc
        except SQLAlchemyError as exc:
            logger.error("Account insert failed: %s", exc)
            raise TransportError("Failed to create user account") from exc
        return _principal(account)

    async def _revoke_tokens(self, account_id: str) -> None:
        try:
            async with self._session_factory() as db:
                account = await db.get(AuthAccount, account_id)
                if account is None:
                    return
                account.token_version = account.token_version + 1
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Token revocation failed: %s", exc)
            raise TransportError("Failed to sign out") from exc

    async def _set_display_name(self, account_id: str, display_name: str) -> Principal:
        try:
            async with self._session_factory() as db:
                account = await db.get(AuthAccount, account_id)
                if account is None:
                    raise NotFoundError("User not found")
                account.display_name = display_name
                await db.commit()
                await db.refresh(account)
        except SQLAlchemyError as exc:
            raise TransportError("Failed to update profile") from exc
        return _principal(account)

    async def verify_token(self, token: str) -> Principal:
        payload = decode_access_token(token)
        if payload is None or payload.get("sub") is None:
            raise AuthenticationError("Could not validate credentials")
        try:
            async with self._session_factory() as db:
                account = await db.get(AuthAccount, payload["sub"])
        except SQLAlchemyError as exc:
            raise TransportError("Authentication service unavailable") from exc
        if account is None or payload.get("ver") != account.token_version:
            raise AuthenticationError("Session has been revoked")
        return _principal(account)

    async def delete_account(self, account_id: str) -> None:
        try:
            async with self._session_factory() as db:
                account = await db.get(AuthAccount, account_id)
                if account is not None:
                    await db.delete(account)
                    await db.commit()
        except SQLAlchemyError as exc:
            raise TransportError("Failed to delete user account") from exc
