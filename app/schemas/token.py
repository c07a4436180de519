"""Pydantic schemas for auth sessions, tokens and session snapshots."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from app.schemas.user import UserAccount, UserRole


class Principal(BaseModel):
    """The authenticated identity as the auth provider knows it."""

    account_id: str
    email: str | None = None
    display_name: str | None = None


class AuthSession(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime | None = None
    user: Principal


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime | None = None


class CurrentUserRead(BaseModel):
    principal: Principal
    account: UserAccount | None
    role: UserRole


class SessionRead(BaseModel):
    principal: Principal | None
    account: UserAccount | None
    role: UserRole | None
    is_loading: bool


class LogoutResponse(BaseModel):
    message: str
