"""
Tests for the Firebase provider classes.

Identity Toolkit calls go through an ``httpx.MockTransport``; Firestore and
Cloud Storage are replaced by small in-memory fakes.
"""

from types import SimpleNamespace

import httpx
import pytest
from google.api_core.exceptions import RetryError

from app.backends.firebase.auth import FirebaseAuthProvider
from app.backends.firebase.identity import FirestoreIdentityResolver
from app.backends.firebase.reports import FirestoreReportRepository
from app.backends.firebase.storage import CloudStorageUploader
from app.core.exceptions import AuthenticationError, NotFoundError, TransportError
from app.schemas.report import PhotoFile, ReportFormData, Vehicle
from app.schemas.token import AuthSession


def _retry_error() -> RetryError:
    return RetryError("Deadline exceeded while calling Firestore", ValueError("timeout"))


def _toolkit(status: int, body=None, text: str | None = None):
    """Auth provider whose sign-in endpoint always answers with *status*."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=body)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = SimpleNamespace(app=None, api_key="test-api-key", db=None, bucket=None)
    return FirebaseAuthProvider(client, http=http), client, seen


# ── Firestore fakes ─────────────────────────────────────────────────
def _snapshot(doc_id: str, data: dict | None):
    return SimpleNamespace(id=doc_id, exists=data is not None, to_dict=lambda: data)


class _FakeDocument:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    async def get(self):
        if self._collection.error:
            raise self._collection.error
        return _snapshot(self.id, self._collection.docs.get(self.id))

    async def set(self, data):
        if self._collection.error:
            raise self._collection.error
        self._collection.docs[self.id] = data


class _FakeCollection:
    """Just enough of a Firestore collection/query for the repositories."""

    def __init__(self, docs: dict | None = None, error: Exception | None = None):
        self.docs = dict(docs or {})
        self.error = error

    def where(self, filter=None):
        return self

    def order_by(self, *args, **kwargs):
        return self

    def limit(self, count):
        return self

    def document(self, doc_id):
        return _FakeDocument(self, doc_id)

    async def stream(self):
        if self.error:
            raise self.error
        for doc_id, data in self.docs.items():
            yield _snapshot(doc_id, data)

    async def add(self, data):
        if self.error:
            raise self.error
        doc_id = f"doc-{len(self.docs) + 1}"
        self.docs[doc_id] = data
        return None, _FakeDocument(self, doc_id)


def _firestore(collection: _FakeCollection):
    return SimpleNamespace(db=SimpleNamespace(collection=lambda name: collection), bucket=None)


# ── Auth ────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_sign_in_success_returns_session():
    auth, _, seen = _toolkit(200, {
        "idToken": "id-token",
        "localId": "uid-1",
        "email": "emp-001@admintracker.local",
        "displayName": "John Doe",
        "expiresIn": "3600",
    })
    session = await auth.sign_in_with_password("emp-001@admintracker.local", "user-pass")

    assert isinstance(session, AuthSession)
    assert session.access_token == "id-token"
    assert session.user.account_id == "uid-1"
    assert session.user.display_name == "John Doe"
    assert await auth.get_session() == session
    assert seen[0].url.params["key"] == "test-api-key"
    await auth.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["INVALID_PASSWORD", "EMAIL_NOT_FOUND", "INVALID_LOGIN_CREDENTIALS"])
async def test_bad_credentials_are_authentication_errors(code):
    auth, _, _ = _toolkit(400, {"error": {"code": 400, "message": code}})
    with pytest.raises(AuthenticationError):
        await auth.sign_in_with_password("someone@example.com", "wrong")
    assert await auth.get_session() is None
    await auth.aclose()


@pytest.mark.asyncio
async def test_throttled_sign_in_is_transport_error():
    auth, _, _ = _toolkit(400, {"error": {"message": "TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled"}})
    with pytest.raises(TransportError):
        await auth.sign_in_with_password("someone@example.com", "pw")
    await auth.aclose()


@pytest.mark.asyncio
async def test_unreadable_error_body_is_transport_error():
    auth, _, _ = _toolkit(503, text="<html>unavailable</html>")
    with pytest.raises(TransportError):
        await auth.sign_in_with_password("someone@example.com", "pw")
    await auth.aclose()


# ── Identity ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_employee_wrong_password_is_not_a_lookup_miss():
    auth, _, _ = _toolkit(400, {"error": {"message": "INVALID_PASSWORD"}})
    users = _FakeCollection({
        "uid-1": {"employeeId": "EMP-001", "email": "emp-001@admintracker.local", "role": "user"},
    })
    identity = FirestoreIdentityResolver(auth, _firestore(users))

    with pytest.raises(AuthenticationError):
        await identity.employee_login("EMP-001", "wrong")
    await auth.aclose()


@pytest.mark.asyncio
async def test_unknown_employee_is_not_found():
    auth, _, seen = _toolkit(200, {})
    identity = FirestoreIdentityResolver(auth, _firestore(_FakeCollection()))

    with pytest.raises(NotFoundError):
        await identity.employee_login("GHOST-01", "whatever")
    assert seen == []
    await auth.aclose()


@pytest.mark.asyncio
async def test_firestore_failures_become_transport_errors():
    auth, _, _ = _toolkit(200, {})
    identity = FirestoreIdentityResolver(auth, _firestore(_FakeCollection(error=_retry_error())))

    with pytest.raises(TransportError):
        await identity.find_by_employee_id("EMP-001")
    with pytest.raises(TransportError):
        await identity.get_account("uid-1")
    await auth.aclose()


@pytest.mark.asyncio
async def test_get_account_reads_profile_document():
    auth, _, _ = _toolkit(200, {})
    users = _FakeCollection({"uid-9": {"employeeId": "ADM-009", "name": "Nine", "role": "admin"}})
    identity = FirestoreIdentityResolver(auth, _firestore(users))

    account = await identity.get_account("uid-9")
    assert account.employee_id == "ADM-009"
    assert account.role.value == "admin"
    assert await identity.get_account("missing") is None
    await auth.aclose()


# ── Reports and storage ─────────────────────────────────────────────
def _form() -> ReportFormData:
    return ReportFormData(
        user_name="John Doe",
        purpose="Client Meeting",
        time_out="2023-06-01T09:00",
        time_in="2023-06-01T12:30",
        vehicle=Vehicle.TAXI,
    )


@pytest.mark.asyncio
async def test_report_queries_translate_firestore_errors():
    auth, _, _ = _toolkit(200, {})
    reports = FirestoreReportRepository(auth, None, _firestore(_FakeCollection(error=_retry_error())))

    with pytest.raises(TransportError):
        await reports.get_reports()
    with pytest.raises(TransportError):
        await reports.get_reports_by_user("John Doe")
    with pytest.raises(TransportError):
        await reports.submit_report(_form())
    await auth.aclose()


class _FailingBlob:
    def upload_from_string(self, content, content_type=None):
        raise _retry_error()


@pytest.mark.asyncio
async def test_storage_failure_is_transport_error():
    bucket = SimpleNamespace(blob=lambda path: _FailingBlob())
    uploader = CloudStorageUploader(SimpleNamespace(bucket=bucket))

    with pytest.raises(TransportError):
        await uploader.upload_image(PhotoFile(filename="x.jpg", content=b"x"), "reports/1_x.jpg")
