"""Pydantic schemas for accounts, roles and credentials."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

_EMPLOYEE_ID_RE = re.compile(r"^[A-Za-z0-9._-]{2,64}$")


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"

    @classmethod
    def parse(cls, value: object) -> "UserRole":
        """Fail-closed role parsing: anything unreadable becomes ``user``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        if value is not None:
            logger.warning("Unreadable role %r, falling back to 'user'", value)
        return cls.USER


class UserAccount(BaseModel):
    account_id: str
    employee_id: str | None = None
    name: str | None = None
    email: str | None = None
    role: UserRole = UserRole.USER
    created_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _fail_closed_role(cls, v: object) -> UserRole:
        return UserRole.parse(v)

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


# ── Requests ────────────────────────────────────────────────────────
class EmployeeLogin(BaseModel):
    employee_id: str
    password: str


class EmployeeCreate(BaseModel):
    employee_id: str
    name: str
    password: str
    role: UserRole = UserRole.USER

    @field_validator("employee_id")
    @classmethod
    def _employee_id(cls, v: str) -> str:
        v = v.strip()
        if not _EMPLOYEE_ID_RE.match(v):
            raise ValueError(
                "Employee ID must be 2-64 chars (letters, digits, '.', '_' or '-')"
            )
        return v

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 200:
            raise ValueError("Name must not exceed 200 characters")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class SignupRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v
