from __future__ import annotations


class ServiceError(Exception):
    """Base class for application service level exceptions."""


class UploadValidationError(ServiceError):
    """Raised when client-supplied upload parameters are missing or invalid."""


class UploadSessionNotFoundError(ServiceError):
    """Raised when an upload id does not refer to a live session."""


class UploadBackendError(ServiceError):
    """Raised when the storage backend fails.

    The message is safe to return to clients; the storage cause is chained
    and logged, never exposed.
    """


class StorageBackendNotConfiguredError(ServiceError):
    """Raised when the storage backend is not properly configured."""
