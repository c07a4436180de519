"""
Report model: one row per field-work trip (relational provider schema).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from app.db.base import Base


class ReportRow(Base):
    __tablename__ = "reports"
    __table_args__ = (Index("ix_reports_user_name_created_at", "user_name", "created_at"),)

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    user_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    user_id: str | None = Column(String(36), nullable=True)  # type: ignore[assignment]
    purpose: str = Column(Text, nullable=False)  # type: ignore[assignment]
    time_out: str = Column(String(32), nullable=False)  # type: ignore[assignment]
    time_in: str = Column(String(32), nullable=False)  # type: ignore[assignment]
    vehicle: str = Column(String(32), nullable=False)  # type: ignore[assignment]
    photo_url: str = Column(String(1024), nullable=False, default="")  # type: ignore[assignment]
    location: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]  # {latitude, longitude, address?}
    notes: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    # Assigned by the repository, never by the caller.
    created_at: datetime = Column(DateTime(timezone=True), nullable=False, index=True)  # type: ignore[assignment]
