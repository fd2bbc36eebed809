"""Upload orchestration for the three-phase multipart upload protocol.

The service hands out storage-issued upload ids, remembers which object key
each id writes to, signs part uploads against that key and finalizes the
upload. Storage credentials never leave the server; clients only receive
time-limited presigned URLs.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence
from urllib.parse import quote

from multipart_api.app.services.base import (
    StorageBackendNotConfiguredError,
    UploadBackendError,
    UploadSessionNotFoundError,
    UploadValidationError,
)
from multipart_api.common.config import Settings, get_settings
from multipart_api.domain.sessions import (
    DuplicateSessionError,
    InMemorySessionRegistry,
    SessionRegistry,
    UploadSession,
)
from multipart_api.infra.observability.metrics import LIVE_SESSIONS, UPLOAD_OPERATIONS
from multipart_api.infra.storage import (
    CompletedPart,
    S3StorageClient,
    StorageClient,
    StorageError,
)

logger = logging.getLogger("uploads")

# Limits enforced by S3
MAX_PART_NUMBER = 10000
MAX_OBJECT_KEY_BYTES = 1024
MAX_METADATA_BYTES = 2048

MISSING_PARAMETERS_MESSAGE = "Missing required parameters"
INVALID_FILE_TYPE_MESSAGE = "Invalid file type"
INVALID_PART_NUMBER_MESSAGE = f"partNumber must be between 1 and {MAX_PART_NUMBER}"
SESSION_NOT_FOUND_MESSAGE = "Upload session not found"
COMPLETED_MESSAGE = "Upload completed successfully!"
ABORTED_MESSAGE = "Upload aborted"
FILE_NAME_TOO_LONG_MESSAGE = "fileName is too long"
DUPLICATE_PART_MESSAGE = "Duplicate PartNumber in parts"


@dataclass(frozen=True, slots=True)
class StartedUpload:
    upload_id: str
    object_key: str
    started_at: datetime


@dataclass(frozen=True, slots=True)
class PartUploadUrl:
    url: str
    part_number: int
    expires_in: int


@dataclass(frozen=True, slots=True)
class FinishedUpload:
    """Result of completing or aborting an upload."""

    message: str
    object_key: str
    finished_at: datetime


def _sanitize_filename(filename: str) -> str:
    """Sanitize filename by removing path separators."""
    cleaned = filename.strip().replace("\\", "_").replace("/", "_")
    return cleaned or "file"


def _metadata_size(metadata: dict[str, str]) -> int:
    # S3 counts the UTF-8 bytes of every key and value
    return sum(
        len(key.encode("utf-8")) + len(value.encode("utf-8"))
        for key, value in metadata.items()
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadService:
    """Coordinates the session registry and the storage backend.

    Registry access is limited to single lookups, inserts and deletes around
    storage calls; no lock is held while the backend is being contacted.
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry | None = None,
        storage_client: StorageClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry if registry is not None else InMemorySessionRegistry()
        self._storage = storage_client
        self._storage_lock = threading.Lock()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def storage(self) -> StorageClient:
        """Storage client, built from settings on first use and then reused."""
        if self._storage is None:
            with self._storage_lock:
                if self._storage is None:
                    self._storage = self._build_storage_client(self._settings)
        return self._storage

    @staticmethod
    def _build_storage_client(settings: Settings) -> StorageClient:
        if not settings.S3_BUCKET:
            raise StorageBackendNotConfiguredError("S3_BUCKET is required")
        if bool(settings.S3_ACCESS_KEY_ID) != bool(settings.S3_SECRET_ACCESS_KEY):
            raise StorageBackendNotConfiguredError(
                "S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be set together"
            )
        return S3StorageClient(settings=settings)

    def _bucket(self) -> str:
        if not self._settings.S3_BUCKET:
            raise StorageBackendNotConfiguredError("S3_BUCKET is required")
        return self._settings.S3_BUCKET

    def _build_object_key(self, filename: str) -> str:
        prefix = (self._settings.UPLOAD_PREFIX or "").lstrip("/")
        if prefix and not prefix.endswith("/"):
            prefix = f"{prefix}/"
        # millis alone can collide for concurrent starts of the same file
        token = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"
        return f"{prefix}{token}/{_sanitize_filename(filename)}"

    def _require_session(self, upload_id: str | None, operation: str) -> UploadSession:
        if not upload_id:
            UPLOAD_OPERATIONS.labels(operation, "invalid").inc()
            raise UploadValidationError(MISSING_PARAMETERS_MESSAGE)
        session = self._registry.get(upload_id)
        if session is None:
            UPLOAD_OPERATIONS.labels(operation, "not_found").inc()
            raise UploadSessionNotFoundError(SESSION_NOT_FOUND_MESSAGE)
        return session

    def _sync_live_sessions(self) -> None:
        LIVE_SESSIONS.set(len(self._registry))

    def start_upload(
        self, file_name: str | None, content_type: str | None
    ) -> StartedUpload:
        """Begin a multipart upload and register its session.

        Raises:
            UploadValidationError: If a parameter is missing, the content
                type is not allowed or the file name does not fit S3 key and
                metadata limits.
            UploadBackendError: If the storage backend rejects the request.
        """
        if not file_name or not file_name.strip() or not content_type:
            UPLOAD_OPERATIONS.labels("start", "invalid").inc()
            raise UploadValidationError(MISSING_PARAMETERS_MESSAGE)
        if not self._settings.is_content_type_allowed(content_type):
            UPLOAD_OPERATIONS.labels("start", "invalid").inc()
            raise UploadValidationError(INVALID_FILE_TYPE_MESSAGE)

        bucket = self._bucket()
        object_key = self._build_object_key(file_name)
        started_at = _utcnow()
        metadata = {
            # S3 user metadata must be ASCII
            "original-filename": quote(file_name, safe=""),
            "uploaded-at": started_at.isoformat(),
        }
        if (
            len(object_key.encode("utf-8")) > MAX_OBJECT_KEY_BYTES
            or _metadata_size(metadata) > MAX_METADATA_BYTES
        ):
            UPLOAD_OPERATIONS.labels("start", "invalid").inc()
            raise UploadValidationError(FILE_NAME_TOO_LONG_MESSAGE)

        try:
            upload = self.storage.init_multipart_upload(
                bucket=bucket,
                object_key=object_key,
                content_type=content_type.strip(),
                metadata=metadata,
            )
        except StorageError as exc:
            UPLOAD_OPERATIONS.labels("start", "error").inc()
            logger.exception(
                "Error starting multipart upload key=%s", object_key
            )
            raise UploadBackendError("Failed to start upload") from exc

        session = UploadSession(
            upload_id=upload.upload_id,
            object_key=object_key,
            bucket=bucket,
            file_name=file_name,
            content_type=content_type.strip(),
            created_at=started_at,
        )
        try:
            self._registry.put(session)
        except DuplicateSessionError as exc:
            UPLOAD_OPERATIONS.labels("start", "error").inc()
            logger.error(
                "Storage returned an upload id that is already live upload_id=%s",
                upload.upload_id,
            )
            raise UploadBackendError("Failed to start upload") from exc

        UPLOAD_OPERATIONS.labels("start", "ok").inc()
        self._sync_live_sessions()
        logger.info(
            "multipart_upload_started upload_id=%s key=%s content_type=%s",
            session.upload_id,
            session.object_key,
            session.content_type,
        )
        return StartedUpload(
            upload_id=session.upload_id,
            object_key=session.object_key,
            started_at=started_at,
        )

    def get_part_upload_url(
        self, upload_id: str | None, part_number: int | None
    ) -> PartUploadUrl:
        """Presign an upload of one part against the session's object key.

        Does not modify the registry. Unknown upload ids never reach storage.
        """
        if part_number is None:
            UPLOAD_OPERATIONS.labels("sign_part", "invalid").inc()
            raise UploadValidationError(MISSING_PARAMETERS_MESSAGE)
        session = self._require_session(upload_id, "sign_part")
        if part_number < 1 or part_number > MAX_PART_NUMBER:
            UPLOAD_OPERATIONS.labels("sign_part", "invalid").inc()
            raise UploadValidationError(INVALID_PART_NUMBER_MESSAGE)

        expires_in = int(self._settings.PRESIGN_EXPIRES_SECONDS)
        try:
            url = self.storage.presign_upload_part(
                bucket=session.bucket,
                object_key=session.object_key,
                upload_id=session.upload_id,
                part_number=int(part_number),
                expires_in=expires_in,
            )
        except StorageError as exc:
            UPLOAD_OPERATIONS.labels("sign_part", "error").inc()
            logger.exception(
                "Error getting signed URL upload_id=%s part_number=%s",
                session.upload_id,
                part_number,
            )
            raise UploadBackendError("Failed to get signed URL") from exc

        UPLOAD_OPERATIONS.labels("sign_part", "ok").inc()
        return PartUploadUrl(
            url=url, part_number=int(part_number), expires_in=expires_in
        )

    def complete_upload(
        self, upload_id: str | None, parts: Sequence[CompletedPart] | None
    ) -> FinishedUpload:
        """Finalize the upload and retire its session.

        On storage failure the session is kept so the client can retry with a
        corrected part list.
        """
        if not parts:
            UPLOAD_OPERATIONS.labels("complete", "invalid").inc()
            raise UploadValidationError(MISSING_PARAMETERS_MESSAGE)
        session = self._require_session(upload_id, "complete")
        part_numbers = [part.part_number for part in parts]
        if any(n < 1 or n > MAX_PART_NUMBER for n in part_numbers):
            UPLOAD_OPERATIONS.labels("complete", "invalid").inc()
            raise UploadValidationError(INVALID_PART_NUMBER_MESSAGE)
        if len(set(part_numbers)) != len(part_numbers):
            UPLOAD_OPERATIONS.labels("complete", "invalid").inc()
            raise UploadValidationError(DUPLICATE_PART_MESSAGE)

        try:
            self.storage.complete_multipart_upload(
                bucket=session.bucket,
                object_key=session.object_key,
                upload_id=session.upload_id,
                parts=parts,
            )
        except StorageError as exc:
            UPLOAD_OPERATIONS.labels("complete", "error").inc()
            logger.exception(
                "Error completing upload upload_id=%s parts=%d",
                session.upload_id,
                len(parts),
            )
            raise UploadBackendError("Failed to complete upload") from exc

        self._registry.delete(session.upload_id)
        UPLOAD_OPERATIONS.labels("complete", "ok").inc()
        self._sync_live_sessions()
        logger.info(
            "multipart_upload_completed upload_id=%s key=%s parts=%d",
            session.upload_id,
            session.object_key,
            len(parts),
        )
        return FinishedUpload(
            message=COMPLETED_MESSAGE,
            object_key=session.object_key,
            finished_at=_utcnow(),
        )

    def abort_upload(self, upload_id: str | None) -> FinishedUpload:
        """Abort the upload in storage and retire its session.

        The session is kept if storage refuses the abort.
        """
        session = self._require_session(upload_id, "abort")

        try:
            self.storage.abort_multipart_upload(
                bucket=session.bucket,
                object_key=session.object_key,
                upload_id=session.upload_id,
            )
        except StorageError as exc:
            UPLOAD_OPERATIONS.labels("abort", "error").inc()
            logger.exception("Error aborting upload upload_id=%s", session.upload_id)
            raise UploadBackendError("Failed to abort upload") from exc

        self._registry.delete(session.upload_id)
        UPLOAD_OPERATIONS.labels("abort", "ok").inc()
        self._sync_live_sessions()
        logger.info(
            "multipart_upload_aborted upload_id=%s key=%s",
            session.upload_id,
            session.object_key,
        )
        return FinishedUpload(
            message=ABORTED_MESSAGE,
            object_key=session.object_key,
            finished_at=_utcnow(),
        )

    def expire_stale_sessions(self, *, now: datetime | None = None) -> int:
        """Drop sessions older than the configured TTL and abort them in storage.

        Storage aborts are best effort: a failure is logged and the session is
        still dropped, since the backend's own lifecycle rules will reclaim it.

        Returns:
            Number of sessions removed from the registry.
        """
        cutoff = (now or _utcnow()) - timedelta(
            seconds=int(self._settings.SESSION_TTL_SECONDS)
        )
        expired = 0
        for session in self._registry.list_expired(cutoff):
            # a concurrent completion may already have retired it
            if not self._registry.delete(session.upload_id):
                continue
            expired += 1
            try:
                self.storage.abort_multipart_upload(
                    bucket=session.bucket,
                    object_key=session.object_key,
                    upload_id=session.upload_id,
                )
            except StorageError:
                logger.warning(
                    "Failed to abort expired upload upload_id=%s key=%s",
                    session.upload_id,
                    session.object_key,
                    exc_info=True,
                )
            UPLOAD_OPERATIONS.labels("expire", "ok").inc()

        if expired:
            self._sync_live_sessions()
            logger.info(
                "multipart_upload_sessions_expired count=%d cutoff=%s",
                expired,
                cutoff.isoformat(),
            )
        return expired
