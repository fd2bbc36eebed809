from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request

from multipart_api.app.services.upload_service import UploadService
from multipart_api.common.config import get_settings

logger = logging.getLogger("http")


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    settings = get_settings()
    if settings.API_KEY_ENABLED:
        api_key_expected = getattr(settings, "API_KEY", None)
        if not x_api_key or (api_key_expected and x_api_key != api_key_expected):
            raise HTTPException(status_code=401, detail="Invalid API key")


def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    settings = get_settings()
    admin_key = getattr(settings, "ADMIN_API_KEY", None)
    if not admin_key:
        raise HTTPException(status_code=503, detail="Admin endpoints are disabled")
    if x_admin_key != admin_key:
        preview = "<missing>"
        if x_admin_key:
            preview = f"{x_admin_key[:4]}***"
        logger.warning(
            "admin_key_mismatch admin_key_preview=%s",
            preview,
        )
        raise HTTPException(status_code=403, detail="Forbidden")
