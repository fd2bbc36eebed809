"""Multipart upload API router.

Exposes the three-phase upload protocol (start, sign part, complete) plus
abort, keeping the paths existing browser clients already call.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from multipart_api.api.deps import get_upload_service
from multipart_api.api.descriptions import ENDPOINT_DESCRIPTORS
from multipart_api.api.schemas.uploads import (
    AbortUploadOut,
    AbortUploadRequest,
    CompleteUploadOut,
    CompleteUploadRequest,
    PartUrlOut,
    PartUrlRequest,
    StartUploadOut,
    StartUploadRequest,
)
from multipart_api.app.services.base import (
    StorageBackendNotConfiguredError,
    UploadBackendError,
    UploadSessionNotFoundError,
    UploadValidationError,
)
from multipart_api.app.services.upload_service import UploadService
from multipart_api.infra.storage.client import CompletedPart

router = APIRouter()


@router.get(
    "/",
    summary="List endpoints",
    description="Describe the upload endpoints, their bodies and responses.",
)
def list_endpoints() -> list[dict]:
    return ENDPOINT_DESCRIPTORS


@router.post(
    "/start-multipart-upload",
    response_model=StartUploadOut,
    summary="Start multipart upload",
    description="Begin a multipart upload and return its upload id.",
)
def start_multipart_upload(
    payload: StartUploadRequest,
    upload_service: UploadService = Depends(get_upload_service),
) -> StartUploadOut:
    try:
        started = upload_service.start_upload(payload.file_name, payload.file_type)
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (UploadBackendError, StorageBackendNotConfiguredError) as exc:
        raise HTTPException(status_code=500, detail="Failed to start upload") from exc

    return StartUploadOut(
        upload_id=started.upload_id,
        start_date_time=started.started_at,
        key=started.object_key,
    )


@router.post(
    "/get-upload-url",
    response_model=PartUrlOut,
    summary="Get presigned part URL",
    description="Generate a time-limited URL for uploading one part.",
)
def get_upload_url(
    payload: PartUrlRequest,
    upload_service: UploadService = Depends(get_upload_service),
) -> PartUrlOut:
    try:
        part_url = upload_service.get_part_upload_url(
            payload.upload_id, payload.part_number
        )
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UploadSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (UploadBackendError, StorageBackendNotConfiguredError) as exc:
        raise HTTPException(status_code=500, detail="Failed to get signed URL") from exc

    return PartUrlOut(url=part_url.url, expires_in=part_url.expires_in)


@router.post(
    "/complete-multipart-upload",
    response_model=CompleteUploadOut,
    summary="Complete multipart upload",
    description="Assemble the uploaded parts and close the upload session.",
)
def complete_multipart_upload(
    payload: CompleteUploadRequest,
    upload_service: UploadService = Depends(get_upload_service),
) -> CompleteUploadOut:
    parts = [
        CompletedPart(part_number=p.part_number, etag=p.etag)
        for p in payload.parts or []
    ]
    try:
        finished = upload_service.complete_upload(payload.upload_id, parts)
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UploadSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (UploadBackendError, StorageBackendNotConfiguredError) as exc:
        raise HTTPException(
            status_code=500, detail="Failed to complete upload"
        ) from exc

    return CompleteUploadOut(
        message=finished.message,
        end_date_time=finished.finished_at,
        key=finished.object_key,
    )


@router.post(
    "/abort-multipart-upload",
    response_model=AbortUploadOut,
    summary="Abort multipart upload",
    description="Discard the uploaded parts and close the upload session.",
)
def abort_multipart_upload(
    payload: AbortUploadRequest,
    upload_service: UploadService = Depends(get_upload_service),
) -> AbortUploadOut:
    try:
        finished = upload_service.abort_upload(payload.upload_id)
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UploadSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (UploadBackendError, StorageBackendNotConfiguredError) as exc:
        raise HTTPException(status_code=500, detail="Failed to abort upload") from exc

    return AbortUploadOut(
        message=finished.message,
        abort_date_time=finished.finished_at,
        key=finished.object_key,
    )
