"""
FastAPI dependencies: backend access and auth guards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from app.backends.base import Backend
from app.core.exceptions import AuthenticationError
from app.schemas.token import Principal
from app.schemas.user import UserAccount, UserRole
from app.services.session import SessionStore, resolve_role

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


@dataclass
class CurrentUser:
    principal: Principal
    account: UserAccount | None
    role: UserRole


# ── Backend ─────────────────────────────────────────────────────────
def get_backend(request: Request) -> Backend:
    """The backend built once in the app lifespan."""
    return request.app.state.backend


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # Read from HttpOnly Cookie
    backend: Backend = Depends(get_backend),
) -> Principal:
    """Verify the token from Header OR Cookie with the provider."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    if not final_token:
        raise AuthenticationError("Could not validate credentials")

    return await backend.auth.verify_token(final_token)


async def get_current_user(
    principal: Principal = Depends(get_current_principal),
    backend: Backend = Depends(get_backend),
) -> CurrentUser:
    """Attach the caller's profile and fail-closed role."""
    account, role = await resolve_role(backend.identity, principal.account_id)
    return CurrentUser(principal=principal, account=account, role=role)


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Only allow admin role to proceed."""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
