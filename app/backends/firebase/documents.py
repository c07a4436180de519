"""
Field mapping between the domain models and the camelCase Firestore
documents of the ``reports`` and ``users`` collections.
"""

from __future__ import annotations

from typing import Any

from app.schemas.report import Report, ReportFormData
from app.schemas.user import UserAccount

REPORTS = "reports"
USERS = "users"


def report_document(
    form: ReportFormData, photo_url: str, owner_id: str | None, created_at: Any
) -> dict[str, Any]:
    return {
        "userName": form.user_name,
        "userId": owner_id,
        "purpose": form.purpose,
        "timeOut": form.time_out,
        "timeIn": form.time_in,
        "vehicle": form.vehicle.value,
        "photoUrl": photo_url,
        "location": form.location.model_dump(exclude_none=True) if form.location else None,
        "notes": form.notes or "",
        "createdAt": created_at,
    }


def report_from_document(doc_id: str, data: dict[str, Any]) -> Report:
    return Report(
        id=doc_id,
        user_name=data.get("userName", ""),
        user_id=data.get("userId") or None,
        purpose=data.get("purpose", ""),
        time_out=data.get("timeOut", ""),
        time_in=data.get("timeIn", ""),
        vehicle=data.get("vehicle", ""),
        photo_url=data.get("photoUrl") or "",
        location=data.get("location"),
        notes=data.get("notes"),
        created_at=data["createdAt"],
    )


def account_document(account: UserAccount) -> dict[str, Any]:
    return {
        "employeeId": account.employee_id,
        "name": account.name,
        "email": account.email,
        "role": account.role.value,
        "createdAt": account.created_at,
    }


def account_from_document(doc_id: str, data: dict[str, Any]) -> UserAccount:
    return UserAccount(
        account_id=doc_id,
        employee_id=data.get("employeeId"),
        name=data.get("name"),
        email=data.get("email"),
        role=data.get("role"),
        created_at=data.get("createdAt"),
    )
