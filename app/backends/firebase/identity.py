"""
Firestore identity resolver; profile documents are keyed by auth uid.
"""

from __future__ import annotations

import logging

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1 import FieldFilter

from app.backends.base import AuthProvider, IdentityResolver
from app.backends.firebase.client import FirebaseClient
from app.backends.firebase.documents import (USERS, account_document,
                                             account_from_document)
from app.core.exceptions import TransportError
from app.schemas.user import UserAccount

logger = logging.getLogger(__name__)


class FirestoreIdentityResolver(IdentityResolver):
    def __init__(self, auth: AuthProvider, client: FirebaseClient) -> None:
        super().__init__(auth)
        self._users = client.db.collection(USERS)

    async def find_by_employee_id(self, employee_id: str) -> UserAccount | None:
        query = (
            self._users.where(filter=FieldFilter("employeeId", "==", employee_id))
            .order_by("createdAt", direction=firestore.Query.ASCENDING)
            .limit(1)
        )
        try:
            async for snapshot in query.stream():
                return account_from_document(snapshot.id, snapshot.to_dict())
        except GoogleAPIError as exc:
            logger.error("Employee lookup failed: %s", exc)
            raise TransportError("Failed to look up employee") from exc
        return None

    async def get_account(self, account_id: str) -> UserAccount | None:
        try:
            snapshot = await self._users.document(account_id).get()
        except GoogleAPIError as exc:
            logger.error("Profile fetch failed: %s", exc)
            raise TransportError("Failed to fetch user profile") from exc
        if not snapshot.exists:
            return None
        return account_from_document(snapshot.id, snapshot.to_dict())

    async def _insert_account(self, account: UserAccount) -> UserAccount:
        try:
            await self._users.document(account.account_id).set(account_document(account))
        except GoogleAPIError as exc:
            logger.error("Profile insert failed: %s", exc)
            raise TransportError("Failed to create user profile") from exc
        return account
