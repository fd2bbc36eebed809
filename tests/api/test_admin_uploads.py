from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from multipart_api.domain.sessions import UploadSession
from multipart_api.main import create_app
from tests.services.mock_storage import MockStorageClient

ADMIN_HEADERS = {"X-Admin-Key": "admin-secret"}


def _stale_session(upload_id: str) -> UploadSession:
    return UploadSession(
        upload_id=upload_id,
        object_key=f"uploads/0-{upload_id}/old.bin",
        bucket="test-bucket",
        file_name="old.bin",
        content_type="application/zip",
        created_at=datetime.now(timezone.utc) - timedelta(days=3),
    )


def test_admin_requires_key():
    client = TestClient(create_app(storage_client=MockStorageClient()))

    assert client.get("/admin/uploads").status_code == 403
    assert (
        client.post("/admin/uploads/sweep", headers={"X-Admin-Key": "wrong"}).status_code
        == 403
    )


def test_admin_disabled_without_configured_key(monkeypatch):
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    client = TestClient(create_app(storage_client=MockStorageClient()))

    resp = client.get("/admin/uploads", headers=ADMIN_HEADERS)

    assert resp.status_code == 503
    assert resp.json()["error_code"] == "service_unavailable"


def test_live_upload_count():
    client = TestClient(create_app(storage_client=MockStorageClient()))
    client.post(
        "/start-multipart-upload", json={"fileName": "a.png", "fileType": "image/png"}
    )

    resp = client.get("/admin/uploads", headers=ADMIN_HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"live": 1}


def test_sweep_expires_stale_sessions():
    mock_storage = MockStorageClient()
    app = create_app(storage_client=mock_storage)
    client = TestClient(app)
    app.state.upload_service.registry.put(_stale_session("stale-1"))
    client.post(
        "/start-multipart-upload", json={"fileName": "a.png", "fileType": "image/png"}
    )

    resp = client.post("/admin/uploads/sweep", headers=ADMIN_HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"expired": 1, "remaining": 1}
    (call,) = mock_storage.calls_to("abort_multipart_upload")
    assert call["upload_id"] == "stale-1"
