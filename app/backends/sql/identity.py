"""
Relational identity resolver over the ``users`` profile table.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.backends.base import AuthProvider, IdentityResolver
from app.core.exceptions import TransportError
from app.models.user import UserProfile
from app.schemas.user import UserAccount

logger = logging.getLogger(__name__)


def _to_account(row: UserProfile) -> UserAccount:
    return UserAccount(
        account_id=row.id,
        employee_id=row.employee_id,
        name=row.name,
        email=row.email,
        role=row.role,
        created_at=row.created_at,
    )


class SqlIdentityResolver(IdentityResolver):
    def __init__(
        self, auth: AuthProvider, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        super().__init__(auth)
        self._session_factory = session_factory

    async def find_by_employee_id(self, employee_id: str) -> UserAccount | None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(UserProfile)
                    .where(UserProfile.employee_id == employee_id)
                    .order_by(UserProfile.created_at.asc())
                    .limit(1)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Employee lookup failed: %s", exc)
            raise TransportError("Failed to look up employee") from exc
        return _to_account(row) if row else None

    async def get_account(self, account_id: str) -> UserAccount | None:
        try:
            async with self._session_factory() as db:
                row = await db.get(UserProfile, account_id)
        except SQLAlchemyError as exc:
            logger.error("Profile fetch failed: %s", exc)
            raise TransportError("Failed to fetch user profile") from exc
        return _to_account(row) if row else None

    async def _insert_account(self, account: UserAccount) -> UserAccount:
        row = UserProfile(
            id=account.account_id,
            employee_id=account.employee_id,
            name=account.name,
            email=account.email,
            role=account.role.value,
            created_at=account.created_at,
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
                await db.refresh(row)
        except SQLAlchemyError as exc:
            logger.error("Profile insert failed: %s", exc)
            raise TransportError("Failed to create user profile") from exc
        return _to_account(row)
