"""
Firestore report repository over the camelCase ``reports`` collection.
"""

from __future__ import annotations

import logging
from datetime import datetime

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1 import FieldFilter

from app.backends.base import AuthProvider, BlobUploader, ReportRepository
from app.backends.firebase.client import FirebaseClient
from app.backends.firebase.documents import (REPORTS, report_document,
                                             report_from_document)
from app.core.exceptions import TransportError
from app.schemas.report import Report, ReportFormData

logger = logging.getLogger(__name__)


class FirestoreReportRepository(ReportRepository):
    def __init__(self, auth: AuthProvider, uploader: BlobUploader, client: FirebaseClient) -> None:
        super().__init__(auth, uploader)
        self._reports = client.db.collection(REPORTS)

    async def _insert_report(
        self, form: ReportFormData, photo_url: str, owner_id: str | None
    ) -> Report:
        document = report_document(form, photo_url, owner_id, firestore.SERVER_TIMESTAMP)
        try:
            _, ref = await self._reports.add(document)
            # Read back to pick up the server-assigned createdAt.
            snapshot = await ref.get()
        except GoogleAPIError as exc:
            logger.error("Report insert failed: %s", exc)
            raise TransportError("Failed to submit report") from exc
        return report_from_document(snapshot.id, snapshot.to_dict())

    async def _fetch(self, query) -> list[Report]:
        query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)
        try:
            return [
                report_from_document(snapshot.id, snapshot.to_dict())
                async for snapshot in query.stream()
            ]
        except GoogleAPIError as exc:
            logger.error("Report query failed: %s", exc)
            raise TransportError("Failed to load reports") from exc

    async def get_reports(self) -> list[Report]:
        return await self._fetch(self._reports)

    async def get_reports_by_user(self, user_name: str) -> list[Report]:
        return await self._fetch(
            self._reports.where(filter=FieldFilter("userName", "==", user_name))
        )

    async def _query_date_range(self, start: datetime, end: datetime) -> list[Report]:
        return await self._fetch(
            self._reports.where(filter=FieldFilter("createdAt", ">=", start)).where(
                filter=FieldFilter("createdAt", "<=", end)
            )
        )
