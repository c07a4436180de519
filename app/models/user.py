"""
Account models for the relational provider.

``AuthAccount`` is the login credential (the provider's auth side);
``UserProfile`` is the role/profile row linked to it by id. They are
written in two separate steps, exactly like a hosted auth service plus a
``users`` table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from app.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class AuthAccount(Base):
    __tablename__ = "auth_accounts"

    id: str = Column(String(36), primary_key=True, default=_new_id)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    display_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    # Bumped on sign-out; tokens carrying an older version are rejected.
    token_version: int = Column(Integer, nullable=False, default=0, server_default="0")  # type: ignore[assignment]
    last_sign_in_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )


class UserProfile(Base):
    __tablename__ = "users"

    id: str = Column(String(36), primary_key=True)  # type: ignore[assignment]  # auth_accounts.id
    # Indexed but not unique: uniqueness is checked read-then-write.
    employee_id: str | None = Column(String(64), nullable=True, index=True)  # type: ignore[assignment]
    name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    role: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]  # admin | user
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
