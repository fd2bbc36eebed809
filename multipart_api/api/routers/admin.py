from __future__ import annotations

from fastapi import APIRouter, Depends

from multipart_api.api.deps import get_upload_service, require_admin_key
from multipart_api.api.schemas.uploads import LiveSessionsOut, SweepOut
from multipart_api.app.services.upload_service import UploadService

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.get("/admin/uploads", response_model=LiveSessionsOut)
def live_uploads(
    upload_service: UploadService = Depends(get_upload_service),
) -> LiveSessionsOut:
    return LiveSessionsOut(live=len(upload_service.registry))


@router.post("/admin/uploads/sweep", response_model=SweepOut)
def sweep_expired_uploads(
    upload_service: UploadService = Depends(get_upload_service),
) -> SweepOut:
    """Expire stale upload sessions now instead of waiting for the background sweep."""
    expired = upload_service.expire_stale_sessions()
    return SweepOut(expired=expired, remaining=len(upload_service.registry))
