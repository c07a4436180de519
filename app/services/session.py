"""
Session Store: the process-local view of who is signed in.

Consumes the provider's auth-state stream and republishes a simpler
``SessionState(principal, account, role, is_loading)`` to its own
subscribers. Role resolution is fail-closed: any failure to read the
profile row yields ``user``, never ``admin``, and never raises.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from app.backends.base import (SUBSCRIBER_BACKLOG, AuthProvider, AuthStateEvent,
                               IdentityResolver, offer_latest)
from app.core.exceptions import ProviderError
from app.schemas.token import Principal, SessionRead
from app.schemas.user import UserAccount, UserRole

logger = logging.getLogger(__name__)


async def resolve_role(
    resolver: IdentityResolver, account_id: str
) -> tuple[UserAccount | None, UserRole]:
    """Look up the profile of *account_id*; degrade to ``user`` on any miss."""
    try:
        account = await resolver.get_account(account_id)
    except ProviderError as exc:
        logger.error("Error fetching user data for %s: %s", account_id, exc.message)
        return None, UserRole.USER
    except Exception:
        logger.exception("Unexpected error fetching user data for %s", account_id)
        return None, UserRole.USER
    if account is None:
        logger.warning("No profile row for account %s; defaulting role to user", account_id)
        return None, UserRole.USER
    return account, account.role


@dataclass(frozen=True)
class SessionState:
    principal: Principal | None = None
    account: UserAccount | None = None
    role: UserRole | None = None
    is_loading: bool = True

    def to_read(self) -> SessionRead:
        return SessionRead(
            principal=self.principal,
            account=self.account,
            role=self.role,
            is_loading=self.is_loading,
        )


class SessionStore:
    def __init__(self, auth: AuthProvider, resolver: IdentityResolver) -> None:
        self._auth = auth
        self._resolver = resolver
        self._state = SessionState()
        self._loaded = asyncio.Event()
        self._subscribers: set[asyncio.Queue[SessionState]] = set()
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._consume(), name="session-store")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def wait_until_loaded(self) -> SessionState:
        await self._loaded.wait()
        return self._state

    async def _consume(self) -> None:
        events = self._auth.auth_state_changes()
        try:
            async for event in events:
                await self.apply(event)
        finally:
            await events.aclose()

    async def apply(self, event: AuthStateEvent) -> SessionState:
        principal = event.session.user if event.session else None
        if principal is None:
            state = SessionState(is_loading=False)
        else:
            account, role = await resolve_role(self._resolver, principal.account_id)
            state = SessionState(principal=principal, account=account, role=role, is_loading=False)
        logger.debug("Auth event %s -> role %s", event.event.value, state.role)
        self._set(state)
        return state

    def _set(self, state: SessionState) -> None:
        self._state = state
        self._loaded.set()
        for queue in list(self._subscribers):
            offer_latest(queue, state)

    async def subscribe(self) -> AsyncIterator[SessionState]:
        """Yield the current state, then every republished state."""
        queue: asyncio.Queue[SessionState] = asyncio.Queue(maxsize=SUBSCRIBER_BACKLOG)
        self._subscribers.add(queue)
        try:
            yield self._state
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)
