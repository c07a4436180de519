"""Pydantic schemas for the analytics dashboard and health checks."""

from __future__ import annotations

from pydantic import BaseModel, Field


class VehicleUsage(BaseModel):
    name: str
    value: int


class WeekdayHours(BaseModel):
    day: str
    hours: float


class MonthlyPurposes(BaseModel):
    month: str  # YYYY-MM
    counts: dict[str, int] = Field(default_factory=dict)


class AnalyticsSummary(BaseModel):
    total_reports: int
    unique_users: int
    average_hours_out: float
    vehicle_usage: list[VehicleUsage]
    hours_by_weekday: list[WeekdayHours]
    purposes_by_month: list[MonthlyPurposes]


class HealthResponse(BaseModel):
    backend: str
    status: str
