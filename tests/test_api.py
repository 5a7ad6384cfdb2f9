"""Tests for the HTTP layer.

Covers:
- Public multipart submission (201 + Location, bad JSON -> 400)
- Staff routes delegate to the service with the caller's identity
- Error mapping: NotFound -> 404, validation -> 400, unexpected -> 500
- HTTP Basic Auth (401 / 503) and rate limiting (429)
- Liveness and readiness endpoints
"""

from __future__ import annotations

import base64
import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import ValidationError

from src.api import health, quotations
from src.api.deps import get_quotation_service
from src.api.errors import GENERIC_ERROR_MESSAGE, register_exception_handlers
from src.db.engine import get_session
from src.integrations.storage.schemas import FileDownload, FileUploadResponse
from src.models.base import utcnow
from src.models.enums import CommentType, Priority, QuotationRequestStatus
from src.quotations.errors import NotFoundError
from src.quotations.service import QuotationRequestService
from src.schemas.quotation import CommentRead, QuotationRequestRead, SignedUrlRead
from src.security.auth import StaffIdentity, verify_staff
from src.security.rate_limiter import public_rate_limit, staff_rate_limit

BASE = "/v1/quotation-requests"

# ── Helpers ──────────────────────────────────────────────────────────


def _make_read(request_id: int = 1, **overrides) -> QuotationRequestRead:
    now = utcnow()
    fields = {
        "id": request_id,
        "request_number": "QR-20260301-ABCDEF12",
        "customer_name": "John Doe",
        "customer_email": "john@example.com",
        "subject": "Custom aluminium enclosure",
        "description": "50 units, anodised black",
        "status": QuotationRequestStatus.NEW,
        "priority": Priority.MEDIUM,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return QuotationRequestRead(**fields)


def _make_auth_header(username: str = "alice@example.com", password: str = "testpass123") -> dict[str, str]:
    """Build HTTP Basic Auth header."""
    credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {credentials}"}


async def _no_limit() -> None:
    return None


def _build_app() -> FastAPI:
    test_app = FastAPI()
    register_exception_handlers(test_app)
    test_app.include_router(quotations.router)
    test_app.include_router(health.router)
    return test_app


@pytest.fixture
def mock_db():
    return AsyncMock()


@pytest.fixture
def mock_service():
    return AsyncMock(spec=QuotationRequestService)


@pytest.fixture
def app(mock_db, mock_service):
    test_app = _build_app()

    async def fake_session():
        yield mock_db

    test_app.dependency_overrides[get_session] = fake_session
    test_app.dependency_overrides[get_quotation_service] = lambda: mock_service
    test_app.dependency_overrides[verify_staff] = lambda: StaffIdentity(
        name="alice@example.com", email="alice@example.com"
    )
    test_app.dependency_overrides[public_rate_limit] = _no_limit
    test_app.dependency_overrides[staff_rate_limit] = _no_limit
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


# ── Public submission ────────────────────────────────────────────────


class TestCreate:
    def test_multipart_submission(self, client, mock_service):
        mock_service.create_quotation_request.return_value = _make_read(request_id=12)
        payload = {
            "customerName": "John Doe",
            "customerEmail": "john@example.com",
            "subject": "Custom aluminium enclosure",
            "description": "50 units, anodised black",
        }

        resp = client.post(
            BASE,
            data={"request": json.dumps(payload)},
            files=[("files", ("drawing.pdf", b"%PDF-1.7", "application/pdf"))],
        )

        assert resp.status_code == 201
        assert resp.headers["location"] == f"{BASE}/12"
        body = resp.json()
        assert body["requestNumber"] == "QR-20260301-ABCDEF12"
        assert body["status"] == "New"

        args = mock_service.create_quotation_request.await_args.args
        assert args[1].customer_name == "John Doe"
        attachments = args[2]
        assert len(attachments) == 1
        assert attachments[0].filename == "drawing.pdf"
        assert attachments[0].content == b"%PDF-1.7"
        assert attachments[0].content_type == "application/pdf"

    def test_submission_without_files(self, client, mock_service):
        mock_service.create_quotation_request.return_value = _make_read()
        payload = {
            "customerName": "John Doe",
            "customerEmail": "john@example.com",
            "subject": "Brackets",
            "description": "Steel brackets",
        }

        resp = client.post(BASE, data={"request": json.dumps(payload)})

        assert resp.status_code == 201
        assert mock_service.create_quotation_request.await_args.args[2] == []

    def test_invalid_payload_is_400(self, client, mock_service):
        resp = client.post(BASE, data={"request": json.dumps({"customerName": "John"})})

        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed"
        mock_service.create_quotation_request.assert_not_awaited()

    def test_missing_request_part_is_400(self, client):
        resp = client.post(BASE, data={})
        assert resp.status_code == 400

    def test_rate_limited_submission_is_429(self, app, client, mock_service):
        async def exhausted() -> None:
            raise HTTPException(status_code=429, detail="Too many requests", headers={"Retry-After": "60"})

        app.dependency_overrides[public_rate_limit] = exhausted

        resp = client.post(BASE, data={"request": "{}"})

        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "60"
        mock_service.create_quotation_request.assert_not_awaited()


# ── Staff reads ──────────────────────────────────────────────────────


class TestReads:
    def test_list_passes_filters(self, client, mock_service):
        mock_service.list_quotation_requests.return_value = [_make_read(2), _make_read(1)]

        resp = client.get(BASE, params={"page": 2, "pageSize": 10, "status": "InReview", "assignedTo": "Alice"})

        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == [2, 1]
        kwargs = mock_service.list_quotation_requests.await_args.kwargs
        assert kwargs["page"] == 2
        assert kwargs["page_size"] == 10
        assert kwargs["status"] == QuotationRequestStatus.IN_REVIEW
        assert kwargs["assigned_to"] == "Alice"

    def test_get_by_id(self, client, mock_service):
        mock_service.get_quotation_request.return_value = _make_read(5)

        resp = client.get(f"{BASE}/5")

        assert resp.status_code == 200
        assert resp.json()["customerEmail"] == "john@example.com"

    def test_not_found_is_404(self, client, mock_service):
        mock_service.get_quotation_request.side_effect = NotFoundError.request(99)

        resp = client.get(f"{BASE}/99")

        assert resp.status_code == 404
        assert resp.json() == {"message": "Quotation request with ID 99 not found"}

    def test_non_numeric_id_is_400(self, client):
        resp = client.get(f"{BASE}/abc")
        assert resp.status_code == 400

    def test_unexpected_error_is_500(self, client, mock_service):
        mock_service.get_quotation_request.side_effect = RuntimeError("connection reset")

        resp = client.get(f"{BASE}/1")

        assert resp.status_code == 500
        assert resp.json()["message"] == GENERIC_ERROR_MESSAGE

    def test_internal_validation_error_is_500(self, client, mock_service):
        """Pydantic errors that are not about the caller's input are server errors."""
        try:
            FileUploadResponse.model_validate({"objectName": "x", "size": None})
        except ValidationError as exc:
            mock_service.get_quotation_request.side_effect = exc

        resp = client.get(f"{BASE}/1")

        assert resp.status_code == 500
        assert resp.json()["message"] == GENERIC_ERROR_MESSAGE

    def test_by_number(self, client, mock_service):
        mock_service.get_by_request_number.return_value = _make_read()

        resp = client.get(f"{BASE}/by-number/QR-20260301-ABCDEF12")

        assert resp.status_code == 200
        assert mock_service.get_by_request_number.await_args.args[1] == "QR-20260301-ABCDEF12"

    def test_by_status(self, client, mock_service):
        mock_service.list_by_status.return_value = []

        resp = client.get(f"{BASE}/by-status/Quoted")

        assert resp.status_code == 200
        assert mock_service.list_by_status.await_args.args[1] == QuotationRequestStatus.QUOTED

    def test_by_unknown_status_is_400(self, client):
        resp = client.get(f"{BASE}/by-status/Archived")
        assert resp.status_code == 400

    def test_by_customer_and_email(self, client, mock_service):
        mock_service.get_by_customer_id.return_value = [_make_read()]
        mock_service.get_by_customer_email.return_value = []

        assert client.get(f"{BASE}/by-customer/77").status_code == 200
        assert client.get(f"{BASE}/by-email/john@example.com").status_code == 200
        assert mock_service.get_by_customer_id.await_args.args[1] == 77


# ── Staff workflow ───────────────────────────────────────────────────


class TestWorkflow:
    def test_update_status_records_caller(self, client, mock_service):
        mock_service.update_status.return_value = _make_read(status=QuotationRequestStatus.IN_REVIEW)

        resp = client.put(f"{BASE}/1/status", json={"status": "InReview", "reason": "Picked up"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "InReview"
        call = mock_service.update_status.await_args
        assert call.args[1:3] == (1, QuotationRequestStatus.IN_REVIEW)
        assert call.kwargs == {"reason": "Picked up", "changed_by": "alice@example.com"}

    def test_update_status_rejects_unknown_status(self, client, mock_service):
        resp = client.put(f"{BASE}/1/status", json={"status": "Archived"})

        assert resp.status_code == 400
        mock_service.update_status.assert_not_awaited()

    def test_assign(self, client, mock_service):
        mock_service.assign_to_team_member.return_value = _make_read(assigned_to_team_member="Bob")

        resp = client.put(f"{BASE}/1/assign", json={"teamMemberName": "Bob", "assignmentReason": "CNC"})

        assert resp.status_code == 200
        assert resp.json()["assignedToTeamMember"] == "Bob"
        assert mock_service.assign_to_team_member.await_args.kwargs == {"reason": "CNC"}

    def test_delete(self, client, mock_service):
        resp = client.delete(f"{BASE}/1")

        assert resp.status_code == 204
        mock_service.delete_quotation_request.assert_awaited_once()


# ── Comments, files, history ─────────────────────────────────────────


class TestChildren:
    def test_add_comment_uses_staff_identity(self, client, mock_service):
        mock_service.add_comment.return_value = CommentRead(
            id=3,
            author_name="alice@example.com",
            author_email="alice@example.com",
            content="Called the customer",
            comment_type=CommentType.INTERNAL,
            is_visible=False,
            created_at=utcnow(),
        )

        resp = client.post(f"{BASE}/1/comments", json={"content": "Called the customer", "isVisible": False})

        assert resp.status_code == 201
        assert resp.json()["isVisible"] is False
        kwargs = mock_service.add_comment.await_args.kwargs
        assert kwargs["author_name"] == "alice@example.com"
        assert kwargs["is_visible"] is False

    def test_delete_missing_comment_is_404(self, client, mock_service):
        mock_service.delete_comment.side_effect = NotFoundError.child("Comment", 9, 1)

        resp = client.delete(f"{BASE}/1/comments/9")

        assert resp.status_code == 404

    def test_download(self, client, mock_service):
        mock_service.download_file.return_value = FileDownload(
            file_name="drawing.pdf", content_type="application/pdf", content=b"%PDF", file_size=4
        )

        resp = client.get(f"{BASE}/1/files/7/download")

        assert resp.status_code == 200
        assert resp.content == b"%PDF"
        assert resp.headers["content-type"] == "application/pdf"
        assert 'filename="drawing.pdf"' in resp.headers["content-disposition"]

    def test_download_with_non_ascii_name(self, client, mock_service):
        mock_service.download_file.return_value = FileDownload(
            file_name="報價單.pdf", content_type="application/pdf", content=b"%PDF", file_size=4
        )

        resp = client.get(f"{BASE}/1/files/7/download")

        assert resp.status_code == 200
        disposition = resp.headers["content-disposition"]
        assert "filename*=UTF-8''%E5%A0%B1%E5%83%B9%E5%96%AE.pdf" in disposition
        assert 'filename=".pdf"' in disposition

    def test_download_name_with_quotes(self, client, mock_service):
        mock_service.download_file.return_value = FileDownload(
            file_name='bid "final".pdf', content_type="application/pdf", content=b"%PDF", file_size=4
        )

        resp = client.get(f"{BASE}/1/files/7/download")

        assert resp.status_code == 200
        disposition = resp.headers["content-disposition"]
        assert 'filename="bid final.pdf"' in disposition
        assert "filename*=UTF-8''bid%20%22final%22.pdf" in disposition

    def test_signed_url(self, client, mock_service):
        mock_service.get_file_signed_url.return_value = SignedUrlRead(
            url="https://files.test/x?sig=1", expires_at=utcnow() + timedelta(hours=3)
        )

        resp = client.get(f"{BASE}/1/files/7/signed-url", params={"expiresInHours": 3})

        assert resp.status_code == 200
        assert resp.json()["url"] == "https://files.test/x?sig=1"
        assert mock_service.get_file_signed_url.await_args.args[3] == timedelta(hours=3)

    def test_signed_url_expiry_out_of_range(self, client):
        resp = client.get(f"{BASE}/1/files/7/signed-url", params={"expiresInHours": 0})
        assert resp.status_code == 400

    def test_delete_file(self, client, mock_service):
        assert client.delete(f"{BASE}/1/files/7").status_code == 204
        assert mock_service.delete_file.await_args.args[1:] == (1, 7)

    def test_status_history(self, client, mock_service):
        mock_service.get_status_history.return_value = []
        assert client.get(f"{BASE}/1/status-history").status_code == 200


# ── Auth ─────────────────────────────────────────────────────────────


class TestAuth:
    @pytest.fixture
    def auth_client(self, app):
        del app.dependency_overrides[verify_staff]
        return TestClient(app, raise_server_exceptions=False)

    def test_401_without_credentials(self, auth_client):
        with patch("src.security.auth.settings") as mock_settings:
            mock_settings.security.admin_web_password = "testpass123"
            resp = auth_client.get(f"{BASE}/1")
        assert resp.status_code == 401

    def test_401_wrong_password(self, auth_client):
        with patch("src.security.auth.settings") as mock_settings:
            mock_settings.security.admin_web_password = "testpass123"
            resp = auth_client.get(f"{BASE}/1", headers=_make_auth_header(password="wrong"))
        assert resp.status_code == 401

    def test_503_when_password_not_configured(self, auth_client):
        with patch("src.security.auth.settings") as mock_settings:
            mock_settings.security.admin_web_password = ""
            resp = auth_client.get(f"{BASE}/1", headers=_make_auth_header())
        assert resp.status_code == 503

    def test_correct_credentials(self, auth_client, mock_service):
        mock_service.update_status.return_value = _make_read()
        with patch("src.security.auth.settings") as mock_settings:
            mock_settings.security.admin_web_password = "testpass123"
            resp = auth_client.put(
                f"{BASE}/1/status", json={"status": "New"}, headers=_make_auth_header("bob")
            )

        assert resp.status_code == 200
        assert mock_service.update_status.await_args.kwargs["changed_by"] == "bob"

    def test_public_submission_needs_no_credentials(self, auth_client, mock_service):
        mock_service.create_quotation_request.return_value = _make_read()
        payload = {
            "customerName": "John Doe",
            "customerEmail": "john@example.com",
            "subject": "Brackets",
            "description": "Steel brackets",
        }

        resp = auth_client.post(BASE, data={"request": json.dumps(payload)})

        assert resp.status_code == 201


# ── Health ───────────────────────────────────────────────────────────


class TestHealth:
    def test_liveness(self, client):
        resp = client.get("/quotation-requests/liveness")
        assert resp.status_code == 200
        assert resp.text == "Healthy"

    def test_readiness_ok(self, client, mock_db):
        resp = client.get("/quotation-requests/readiness")

        assert resp.status_code == 200
        assert resp.json()["status"] == "Healthy"
        mock_db.execute.assert_awaited_once()

    def test_readiness_db_down(self, client, mock_db):
        mock_db.execute.side_effect = ConnectionError("db down")

        resp = client.get("/quotation-requests/readiness")

        assert resp.status_code == 503
        assert resp.json()["status"] == "Unhealthy"
