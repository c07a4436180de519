"""
Relational report repository over the snake_case ``reports`` table.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.backends.base import AuthProvider, BlobUploader, ReportRepository
from app.core.exceptions import TransportError
from app.models.report import ReportRow
from app.schemas.report import Report, ReportFormData

logger = logging.getLogger(__name__)


def _to_report(row: ReportRow) -> Report:
    return Report(
        id=row.id,
        user_name=row.user_name,
        user_id=row.user_id,
        purpose=row.purpose,
        time_out=row.time_out,
        time_in=row.time_in,
        vehicle=row.vehicle,
        photo_url=row.photo_url or "",
        location=row.location,
        notes=row.notes,
        created_at=row.created_at,
    )


class SqlReportRepository(ReportRepository):
    def __init__(
        self,
        auth: AuthProvider,
        uploader: BlobUploader,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        super().__init__(auth, uploader)
        self._session_factory = session_factory
        self._last_created_at: datetime | None = None

    def _next_created_at(self) -> datetime:
        """Wall clock, nudged forward so two inserts never share a timestamp."""
        now = datetime.now(timezone.utc)
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    async def _insert_report(
        self, form: ReportFormData, photo_url: str, owner_id: str | None
    ) -> Report:
        row = ReportRow(
            user_name=form.user_name,
            user_id=owner_id,
            purpose=form.purpose,
            time_out=form.time_out,
            time_in=form.time_in,
            vehicle=form.vehicle.value,
            photo_url=photo_url,
            location=form.location.model_dump(exclude_none=True) if form.location else None,
            notes=form.notes or "",
            created_at=self._next_created_at(),
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
                await db.refresh(row)
        except SQLAlchemyError as exc:
            logger.error("Report insert failed: %s", exc)
            raise TransportError("Failed to submit report") from exc
        return _to_report(row)

    async def _fetch(self, stmt) -> list[Report]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt.order_by(ReportRow.created_at.desc()))
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Report query failed: %s", exc)
            raise TransportError("Failed to load reports") from exc
        return [_to_report(row) for row in rows]

    async def get_reports(self) -> list[Report]:
        return await self._fetch(select(ReportRow))

    async def get_reports_by_user(self, user_name: str) -> list[Report]:
        return await self._fetch(select(ReportRow).where(ReportRow.user_name == user_name))

    async def _query_date_range(self, start: datetime, end: datetime) -> list[Report]:
        created_at = ReportRow.created_at
        return await self._fetch(
            select(ReportRow).where(created_at >= start, created_at <= end)
        )
