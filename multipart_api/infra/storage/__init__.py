"""Storage gateway: the protocol the service codes against and its boto3 implementation."""

from .client import CompletedPart, MultipartUpload, StorageClient, StorageError
from .s3_client import S3StorageClient

__all__ = [
    "CompletedPart",
    "MultipartUpload",
    "S3StorageClient",
    "StorageClient",
    "StorageError",
]
