"""
Firebase auth provider.

The Admin SDK cannot check passwords, so sign-in goes through the Identity
Toolkit REST endpoint; everything else uses ``firebase_admin.auth``. Admin
SDK calls are blocking and run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import httpx
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from app.backends.base import AuthProvider
from app.backends.firebase.client import FirebaseClient
from app.core.exceptions import (AuthenticationError, ConflictError,
                                 NotFoundError, TransportError)
from app.schemas.token import AuthSession, Principal

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

_CREDENTIAL_ERRORS = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "USER_DISABLED",
}


def _principal(record: firebase_auth.UserRecord) -> Principal:
    return Principal(account_id=record.uid, email=record.email, display_name=record.display_name)


class FirebaseAuthProvider(AuthProvider):
    def __init__(self, client: FirebaseClient, http: httpx.AsyncClient | None = None) -> None:
        super().__init__()
        self._client = client
        self._http = http or httpx.AsyncClient(timeout=10.0)

    async def _authenticate(self, email: str, password: str) -> AuthSession:
        try:
            resp = await self._http.post(
                SIGN_IN_URL,
                params={"key": self._client.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
            )
        except httpx.HTTPError as exc:
            logger.error("Identity Toolkit request failed: %s", exc)
            raise TransportError("Authentication service unavailable") from exc

        if resp.status_code != 200:
            try:
                message = resp.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = ""
            # e.g. "INVALID_PASSWORD" or "TOO_MANY_ATTEMPTS_TRY_LATER : ..."
            code = message.split(" ")[0]
            if code in _CREDENTIAL_ERRORS:
                raise AuthenticationError("Invalid login credentials")
            logger.error("Identity Toolkit returned %s: %s", resp.status_code, message)
            raise TransportError(message or "Authentication service error")

        data = resp.json()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(data.get("expiresIn", 3600)))
        return AuthSession(
            access_token=data["idToken"],
            expires_at=expires_at,
            user=Principal(
                account_id=data["localId"],
                email=data.get("email"),
                display_name=data.get("displayName") or None,
            ),
        )

    async def _create_account(
        self, email: str, password: str, display_name: str | None
    ) -> Principal:
        try:
            record = await asyncio.to_thread(
                firebase_auth.create_user,
                email=email,
                password=password,
                display_name=display_name,
                app=self._client.app,
            )
        except firebase_auth.EmailAlreadyExistsError as exc:
            raise ConflictError("User already registered") from exc
        except firebase_exceptions.FirebaseError as exc:
            logger.error("create_user failed: %s", exc)
            raise TransportError(str(exc)) from exc
        return _principal(record)

    async def _revoke_tokens(self, account_id: str) -> None:
        try:
            await asyncio.to_thread(
                firebase_auth.revoke_refresh_tokens, account_id, app=self._client.app
            )
        except firebase_auth.UserNotFoundError:
            return
        except firebase_exceptions.FirebaseError as exc:
            raise TransportError(str(exc)) from exc

    async def _set_display_name(self, account_id: str, display_name: str) -> Principal:
        try:
            record = await asyncio.to_thread(
                firebase_auth.update_user,
                account_id,
                display_name=display_name,
                app=self._client.app,
            )
        except firebase_auth.UserNotFoundError as exc:
            raise NotFoundError("User not found") from exc
        except firebase_exceptions.FirebaseError as exc:
            raise TransportError(str(exc)) from exc
        return _principal(record)

    async def verify_token(self, token: str) -> Principal:
        try:
            claims = await asyncio.to_thread(
                firebase_auth.verify_id_token, token, app=self._client.app, check_revoked=True
            )
        except firebase_auth.RevokedIdTokenError as exc:
            raise AuthenticationError("Session has been revoked") from exc
        except (firebase_auth.InvalidIdTokenError, ValueError) as exc:
            raise AuthenticationError("Could not validate credentials") from exc
        except firebase_exceptions.FirebaseError as exc:
            raise TransportError(str(exc)) from exc
        return Principal(
            account_id=claims["uid"],
            email=claims.get("email"),
            display_name=claims.get("name"),
        )

    async def delete_account(self, account_id: str) -> None:
        try:
            await asyncio.to_thread(firebase_auth.delete_user, account_id, app=self._client.app)
        except firebase_auth.UserNotFoundError:
            return
        except firebase_exceptions.FirebaseError as exc:
            raise TransportError(str(exc)) from exc

    async def aclose(self) -> None:
        await self._http.aclose()
