"""
Visit report endpoints: submission, admin listing / search, analytics.

- POST /reports is open to any authenticated user.
- Listing everything and analytics require the admin role.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import (APIRouter, Depends, File, Form, HTTPException, Query,
                     UploadFile)
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.api.v1.deps import (CurrentUser, get_backend, get_current_user,
                             require_admin)
from app.backends.base import Backend, as_utc
from app.schemas.analytics import AnalyticsSummary, HealthResponse
from app.schemas.report import (Location, PhotoFile, Report, ReportFormData,
                                Vehicle)
from app.services.reports import search_reports, summarize

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


def _require_both(start: datetime | None, end: datetime | None) -> bool:
    """True when a full window was given; a half-open one is rejected."""
    if (start is None) != (end is None):
        raise HTTPException(status_code=422, detail="Both start and end are required")
    if start is not None and end is not None and as_utc(start) > as_utc(end):
        raise HTTPException(status_code=422, detail="start must not be after end")
    return start is not None


def _in_window(report: Report, start: datetime, end: datetime) -> bool:
    return as_utc(start) <= report.created_at <= as_utc(end)


# ── Submit ──────────────────────────────────────────────────────────
@router.post("/reports", response_model=Report, status_code=201)
async def submit_report(
    user_name: str = Form(...),
    purpose: str = Form(...),
    time_out: str = Form(...),
    time_in: str = Form(...),
    vehicle: Vehicle = Form(...),
    latitude: float = Form(...),
    longitude: float = Form(...),
    address: str | None = Form(None),
    notes: str | None = Form(None),
    photo: UploadFile = File(...),
    backend: Backend = Depends(get_backend),
    current_user: CurrentUser = Depends(get_current_user),
) -> Report:
    """Upload the photo, then store the report owned by the caller."""
    try:
        form = ReportFormData(
            user_name=user_name,
            purpose=purpose,
            time_out=time_out,
            time_in=time_in,
            vehicle=vehicle,
            location=Location(latitude=latitude, longitude=longitude, address=address or None),
            notes=notes,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    if not (photo.content_type or "").startswith("image/"):
        raise HTTPException(status_code=422, detail="Photo must be an image")

    content = await photo.read()
    if not content:
        raise HTTPException(status_code=422, detail="Photo is empty")

    return await backend.reports.submit_report(
        form,
        PhotoFile(filename=photo.filename or "photo", content=content, content_type=photo.content_type),
        owner_id=current_user.principal.account_id,
    )


# ── Admin listing ───────────────────────────────────────────────────
@router.get("/reports", response_model=list[Report])
async def list_reports(
    user_name: str | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    q: str | None = Query(None, max_length=200),
    backend: Backend = Depends(get_backend),
    _admin: CurrentUser = Depends(require_admin),
) -> list[Report]:
    """All reports newest first, optionally by user name and/or creation window, then searched."""
    ranged = _require_both(start, end)
    if user_name is not None:
        reports = await backend.reports.get_reports_by_user(user_name)
        if ranged:
            reports = [r for r in reports if _in_window(r, start, end)]
    elif ranged:
        reports = await backend.reports.get_reports_by_date_range(start, end)
    else:
        reports = await backend.reports.get_reports()
    return search_reports(reports, q)


@router.get("/reports/mine", response_model=list[Report])
async def my_reports(
    backend: Backend = Depends(get_backend),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[Report]:
    """Reports filed under the caller's display name."""
    name = (current_user.account.name if current_user.account else None) or (
        current_user.principal.display_name
    )
    if not name:
        return []
    return await backend.reports.get_reports_by_user(name)


# ── Analytics ───────────────────────────────────────────────────────
@router.get("/analytics/summary", response_model=AnalyticsSummary)
async def analytics_summary(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    backend: Backend = Depends(get_backend),
    _admin: CurrentUser = Depends(require_admin),
) -> AnalyticsSummary:
    """Dashboard figures over all reports or one creation window."""
    if _require_both(start, end):
        reports = await backend.reports.get_reports_by_date_range(start, end)
    else:
        reports = await backend.reports.get_reports()
    return summarize(reports)


# ── Health ─────────────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(backend: Backend = Depends(get_backend)) -> HealthResponse:
    return HealthResponse(backend=backend.name, status="ok")
