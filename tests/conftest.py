from __future__ import annotations

import os

import pytest

os.environ.setdefault("S3_BUCKET", "test-bucket")
os.environ.setdefault("S3_REGION", "us-east-1")
os.environ.setdefault("S3_ACCESS_KEY_ID", "test-key")
os.environ.setdefault("S3_SECRET_ACCESS_KEY", "test-secret")
os.environ["SESSION_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["API_KEY_ENABLED"] = "false"
os.environ["ADMIN_API_KEY"] = os.environ.get("ADMIN_API_KEY") or "admin-secret"

from multipart_api.common.config import get_settings  # noqa: E402

get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]
