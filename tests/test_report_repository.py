"""Tests for the report repository and the local blob uploader."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from app.backends.base import Backend, BlobUploader
from app.core.exceptions import TransportError
from app.schemas.report import Location, PhotoFile, ReportFormData, Vehicle
from conftest import PHOTO_BYTES, USER_ID, USER_PASSWORD


def _form(user_name="John Doe", purpose="Client Meeting", **overrides) -> ReportFormData:
    data = {
        "user_name": user_name,
        "purpose": purpose,
        "time_out": "2023-06-01T09:00",
        "time_in": "2023-06-01T12:30",
        "vehicle": Vehicle.PERSONAL_CAR,
        "location": Location(latitude=37.7749, longitude=-122.4194),
    }
    data.update(overrides)
    return ReportFormData(**data)


async def _seed(backend: Backend, names: list[str]):
    return [await backend.reports.submit_report(_form(user_name=n)) for n in names]


@pytest.mark.asyncio
async def test_submit_report_scenario(backend: Backend, media_root: Path):
    """Photo is uploaded first, location embedded verbatim, createdAt after the call."""
    issued = datetime.now(timezone.utc)
    report = await backend.reports.submit_report(
        _form(),
        PhotoFile(filename="site.jpg", content=PHOTO_BYTES, content_type="image/jpeg"),
    )

    assert report.id
    assert report.user_name == "John Doe"
    assert report.purpose == "Client Meeting"
    assert report.time_out == "2023-06-01T09:00"
    assert report.time_in == "2023-06-01T12:30"
    assert report.vehicle == "Personal Car"
    assert report.location == Location(latitude=37.7749, longitude=-122.4194)
    assert report.location.address is None
    assert report.created_at > issued

    assert report.photo_url.startswith("http://test/media/reports/")
    assert report.photo_url.endswith("_site.jpg")
    stored = media_root / report.photo_url.removeprefix("http://test/media/")
    assert stored.read_bytes() == PHOTO_BYTES


@pytest.mark.asyncio
async def test_submit_without_photo_stores_empty_url(backend: Backend):
    report = await backend.reports.submit_report(_form(notes=None))
    assert report.photo_url == ""
    assert report.notes == ""


@pytest.mark.asyncio
async def test_owner_defaults_to_current_session(backend: Backend, user_account):
    anonymous = await backend.reports.submit_report(_form())
    assert anonymous.user_id is None

    await backend.identity.employee_login(USER_ID, USER_PASSWORD)
    owned = await backend.reports.submit_report(_form())
    assert owned.user_id == user_account.account_id

    explicit = await backend.reports.submit_report(_form(), owner_id="someone-else")
    assert explicit.user_id == "someone-else"


@pytest.mark.asyncio
async def test_get_reports_newest_first(backend: Backend):
    created = await _seed(backend, ["A", "B", "A", "C"])
    reports = await backend.reports.get_reports()

    assert [r.id for r in reports] == [r.id for r in reversed(created)]
    assert len({r.id for r in reports}) == len(created)
    stamps = [r.created_at for r in reports]
    assert stamps == sorted(stamps, reverse=True)


@pytest.mark.asyncio
async def test_get_reports_by_user_is_ordered_subset(backend: Backend):
    await _seed(backend, ["A", "B", "A", "C", "A"])
    everything = await backend.reports.get_reports()
    only_a = await backend.reports.get_reports_by_user("A")

    assert [r.id for r in only_a] == [r.id for r in everything if r.user_name == "A"]
    assert await backend.reports.get_reports_by_user("a") == []


@pytest.mark.asyncio
async def test_date_range_is_inclusive(backend: Backend):
    first, second, third = await _seed(backend, ["A", "B", "C"])
    window = await backend.reports.get_reports_by_date_range(first.created_at, second.created_at)
    assert [r.id for r in window] == [second.id, first.id]

    single = await backend.reports.get_reports_by_date_range(third.created_at, third.created_at)
    assert [r.id for r in single] == [third.id]


@pytest.mark.asyncio
async def test_date_range_accepts_naive_utc_bounds(backend: Backend):
    (report,) = await _seed(backend, ["A"])
    start = (report.created_at - timedelta(seconds=1)).replace(tzinfo=None)
    end = (report.created_at + timedelta(seconds=1)).replace(tzinfo=None)
    assert [r.id for r in await backend.reports.get_reports_by_date_range(start, end)] == [report.id]


@pytest.mark.asyncio
async def test_empty_date_range_returns_empty_list(backend: Backend):
    await _seed(backend, ["A", "B"])
    start = datetime(2001, 1, 1, tzinfo=timezone.utc)
    assert await backend.reports.get_reports_by_date_range(start, start + timedelta(days=1)) == []


def test_photo_path_convention():
    assert BlobUploader.photo_path("photo.png", now=1685610000.5) == "reports/1685610000500_photo.png"
    assert BlobUploader.photo_path("C:\\Users\\me\\img.jpg", now=1.0) == "reports/1000_img.jpg"
    assert BlobUploader.photo_path("../../etc/passwd", now=1.0) == "reports/1000_passwd"


@pytest.mark.asyncio
async def test_uploader_rejects_paths_outside_root(backend: Backend):
    photo = PhotoFile(filename="x.jpg", content=b"x")
    with pytest.raises(TransportError):
        await backend.uploader.upload_image(photo, "../outside.jpg")
