"""
In-memory report search and dashboard aggregation.

Everything here works on already-materialised report lists, so it behaves
the same whichever backend produced them.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime

from app.schemas.analytics import (AnalyticsSummary, MonthlyPurposes,
                                   VehicleUsage, WeekdayHours)
from app.schemas.report import VEHICLES, Report

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def search_reports(reports: list[Report], query: str | None) -> list[Report]:
    """Case-insensitive substring match on user name, purpose and address."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(reports)

    def _matches(report: Report) -> bool:
        address = report.location.address if report.location else None
        return (
            needle in report.user_name.lower()
            or needle in report.purpose.lower()
            or bool(address and needle in address.lower())
        )

    return [r for r in reports if _matches(r)]


def _parse_wall_clock(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def hours_out(report: Report) -> float | None:
    """Length of the trip in hours, or ``None`` if the window is unusable."""
    start = _parse_wall_clock(report.time_out)
    end = _parse_wall_clock(report.time_in)
    if start is None or end is None:
        return None
    try:
        seconds = (end - start).total_seconds()
    except TypeError:  # one side carries an offset, the other does not
        return None
    if seconds < 0:
        return None
    return seconds / 3600


def summarize(reports: list[Report]) -> AnalyticsSummary:
    durations: list[float] = []
    weekday_hours: dict[int, float] = defaultdict(float)
    vehicles: Counter[str] = Counter()
    by_month: dict[str, Counter[str]] = defaultdict(Counter)

    for report in reports:
        vehicles[report.vehicle] += 1
        by_month[report.created_at.strftime("%Y-%m")][report.purpose] += 1
        hours = hours_out(report)
        if hours is None:
            continue
        durations.append(hours)
        weekday_hours[_parse_wall_clock(report.time_out).weekday()] += hours

    average = round(sum(durations) / len(durations), 1) if durations else 0.0
    # Every known vehicle is listed; unknown stored values follow.
    vehicle_names = VEHICLES + sorted(v for v in vehicles if v not in VEHICLES)

    return AnalyticsSummary(
        total_reports=len(reports),
        unique_users=len({r.user_name for r in reports}),
        average_hours_out=average,
        vehicle_usage=[VehicleUsage(name=n, value=vehicles.get(n, 0)) for n in vehicle_names],
        hours_by_weekday=[
            WeekdayHours(day=day, hours=round(weekday_hours.get(i, 0.0), 2))
            for i, day in enumerate(WEEKDAYS)
        ],
        purposes_by_month=[
            MonthlyPurposes(month=month, counts=dict(counts))
            for month, counts in sorted(by_month.items())
        ],
    )
