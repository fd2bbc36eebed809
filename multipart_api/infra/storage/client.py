"""Object store gateway used by the upload orchestrator.

Every call is keyword-only and names the bucket and object key explicitly, so a
gateway holds no per-upload state. Backend failures surface as StorageError;
callers decide what the client gets to see.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence


class StorageError(RuntimeError):
    """The object store refused or failed a gateway call."""


@dataclass(frozen=True, slots=True)
class CompletedPart:
    """Part number and ETag a client reports after uploading one part."""

    part_number: int
    etag: str


@dataclass(frozen=True, slots=True)
class MultipartUpload:
    upload_id: str
    bucket: str
    object_key: str


class StorageClient(Protocol):
    """What the upload service needs from an S3-style multipart API."""

    def init_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> MultipartUpload:
        """Open an upload and return the id the store assigned to it.

        ``metadata`` is stored as object user metadata once the upload is
        completed; values must already be ASCII.
        """
        ...

    def presign_upload_part(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        part_number: int,
        expires_in: int,
    ) -> str:
        """Sign a PUT of one part; the URL stops working after ``expires_in`` seconds."""
        ...

    def complete_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        parts: Sequence[CompletedPart],
    ) -> None:
        """Stitch the listed parts into the final object.

        ``parts`` may arrive in any order.
        """
        ...

    def abort_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
    ) -> None:
        """Discard the upload and any parts already stored for it."""
        ...
