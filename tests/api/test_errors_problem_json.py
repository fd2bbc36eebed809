from fastapi.testclient import TestClient

from multipart_api.main import create_app
from tests.services.mock_storage import MockStorageClient


def test_http_exception_problem_json():
    client = TestClient(create_app(storage_client=MockStorageClient()))
    # unknown upload -> 404 with RFC7807 body
    r = client.post(
        "/get-upload-url",
        json={"partNumber": 1, "uploadId": "missing"},
        headers={"X-Request-Id": "req-404"},
    )
    assert r.status_code == 404
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    for key in ("type", "title", "status", "detail", "instance", "error_code"):
        assert key in body
    assert body["status"] == 404
    assert body["error_code"] == "not_found"
    assert body["detail"] == "Upload session not found"
    assert body["request_id"] == "req-404"


def test_validation_error_problem_json():
    client = TestClient(create_app(storage_client=MockStorageClient()))
    # parts must be a list of {ETag, PartNumber}
    r = client.post(
        "/complete-multipart-upload",
        json={"uploadId": "u", "parts": [{"PartNumber": "one"}]},
    )
    assert r.status_code == 422
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    assert body.get("status") == 422
    assert body.get("error_code") == "validation_error"
    assert isinstance(body.get("detail"), list)
