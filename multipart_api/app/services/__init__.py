from .base import (
    ServiceError,
    StorageBackendNotConfiguredError,
    UploadBackendError,
    UploadSessionNotFoundError,
    UploadValidationError,
)
from .upload_service import (
    FinishedUpload,
    PartUploadUrl,
    StartedUpload,
    UploadService,
)

__all__ = [
    "ServiceError",
    "StorageBackendNotConfiguredError",
    "UploadBackendError",
    "UploadSessionNotFoundError",
    "UploadValidationError",
    "FinishedUpload",
    "PartUploadUrl",
    "StartedUpload",
    "UploadService",
]
