"""Pydantic schemas for visit reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Vehicle(str, Enum):
    PERSONAL_CAR = "Personal Car"
    COMPANY_VEHICLE = "Company Vehicle"
    TAXI = "Taxi"
    PUBLIC_TRANSPORT = "Public Transport"
    WALKING = "Walking"
    OTHER = "Other"


VEHICLES = [v.value for v in Vehicle]


class Location(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = None


# ── Submission ──────────────────────────────────────────────────────
class ReportFormData(BaseModel):
    """Everything the submit form sends except the photo bytes."""

    user_name: str
    purpose: str
    time_out: str
    time_in: str
    vehicle: Vehicle
    location: Location | None = None
    notes: str | None = None

    @field_validator("user_name", "purpose", "time_out", "time_in")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be empty")
        return v


@dataclass(frozen=True)
class PhotoFile:
    """An uploaded photo: original file name, raw bytes and MIME type."""

    filename: str
    content: bytes
    content_type: str | None = None


# ── Read model ──────────────────────────────────────────────────────
class Report(BaseModel):
    id: str
    user_name: str
    user_id: str | None = None
    purpose: str
    time_out: str
    time_in: str
    vehicle: str
    photo_url: str = ""
    location: Location | None = None
    notes: str | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive values; everything is stored as UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
