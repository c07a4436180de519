"""
Auth endpoints: employee-ID login, email login, signup, logout and
employee provisioning.

Annotations must stay eager in this module: the rate-limited endpoints are
resolved through slowapi's wrapper, which does not carry these globals.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.api.v1.deps import (CurrentUser, get_backend, get_current_user,
                             get_session_store, require_admin)
from app.backends.base import Backend
from app.core.config import settings
from app.schemas.token import (AuthSession, CurrentUserRead, LogoutResponse,
                               SessionRead, Token)
from app.schemas.user import (EmployeeCreate, EmployeeLogin, SignupRequest,
                              UserAccount)
from app.services.session import SessionStore

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _issue(response: Response, session: AuthSession) -> Token:
    """Set the HttpOnly cookie and return the token body."""
    response.set_cookie(
        key="access_token",
        value=f"Bearer {session.access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return Token(
        access_token=session.access_token,
        token_type=session.token_type,
        expires_at=session.expires_at,
    )


@router.post("/employee-login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def employee_login(
    request: Request,
    response: Response,
    body: EmployeeLogin,
    backend: Backend = Depends(get_backend),
) -> Token:
    """Log in with employee ID + password."""
    session = await backend.identity.employee_login(body.employee_id, body.password)
    return _issue(response, session)


@router.post("/login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    backend: Backend = Depends(get_backend),
) -> Token:
    """OAuth2 password flow; ``username`` carries the email address."""
    session = await backend.identity.login(form_data.username.strip().lower(), form_data.password)
    return _issue(response, session)


@router.post("/signup", response_model=UserAccount, status_code=201)
async def signup(
    body: SignupRequest,
    backend: Backend = Depends(get_backend),
) -> UserAccount:
    """Self-service account with the default ``user`` role."""
    return await backend.identity.signup(body.email, body.password)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    current_user: CurrentUser = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
) -> LogoutResponse:
    """Revoke the caller's tokens and clear the auth cookie."""
    await backend.identity.logout(current_user.principal)
    response.delete_cookie("access_token")
    return LogoutResponse(message="Logged out")


@router.get("/me", response_model=CurrentUserRead)
async def read_current_user(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUserRead:
    """Return profile and resolved role of the caller."""
    return CurrentUserRead(
        principal=current_user.principal,
        account=current_user.account,
        role=current_user.role,
    )


@router.get("/session", response_model=SessionRead)
async def read_session(
    store: SessionStore = Depends(get_session_store),
) -> SessionRead:
    """Snapshot of the process-local session."""
    return store.state.to_read()


# ── Employee provisioning (admin-only) ─────────────────────────────
@router.post("/employees", response_model=UserAccount, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    backend: Backend = Depends(get_backend),
    _admin: CurrentUser = Depends(require_admin),
) -> UserAccount:
    """Create a login-capable employee account (admin only)."""
    account = await backend.identity.create_employee(
        body.employee_id, body.name, body.password, body.role
    )
    logger.info("Admin %s created employee %s", _admin.principal.account_id, body.employee_id)
    return account
