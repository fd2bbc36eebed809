"""Tests for S3 storage client."""

from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest

from multipart_api.common.config import Settings
from multipart_api.infra.storage.client import CompletedPart, MultipartUpload, StorageError
from multipart_api.infra.storage.s3_client import S3StorageClient


class TestS3StorageClient:
    """Test S3StorageClient against a mocked boto3 client."""

    @pytest.fixture
    def mock_s3(self):
        """Mock boto3 S3 client."""
        mock_client = MagicMock()
        with patch.object(S3StorageClient, "_build_client", return_value=mock_client):
            yield mock_client

    @pytest.fixture
    def mock_settings(self):
        """Create mock settings for S3."""
        settings = MagicMock()
        settings.S3_ENDPOINT_URL = "http://localhost:9000"
        settings.S3_REGION = "us-east-1"
        settings.S3_ACCESS_KEY_ID = "test-key"
        settings.S3_SECRET_ACCESS_KEY = "test-secret"
        settings.S3_USE_SSL = False
        settings.S3_ADDRESSING_STYLE = "path"
        settings.S3_MAX_ATTEMPTS = 3
        return settings

    @pytest.fixture
    def client(self, mock_s3, mock_settings):
        """Create S3StorageClient with mocked boto3."""
        return S3StorageClient(settings=mock_settings)

    def test_init_multipart_upload(self, client, mock_s3):
        mock_s3.create_multipart_upload.return_value = {
            "UploadId": "test-upload-id",
            "Bucket": "test-bucket",
            "Key": "uploads/cat.png",
        }

        result = client.init_multipart_upload(
            bucket="test-bucket",
            object_key="uploads/cat.png",
            content_type="image/png",
            metadata={"original-filename": "cat.png"},
        )

        assert isinstance(result, MultipartUpload)
        assert result.upload_id == "test-upload-id"
        assert result.bucket == "test-bucket"
        assert result.object_key == "uploads/cat.png"

        mock_s3.create_multipart_upload.assert_called_once_with(
            Bucket="test-bucket",
            Key="uploads/cat.png",
            ContentType="image/png",
            Metadata={"original-filename": "cat.png"},
        )

    def test_init_multipart_upload_without_optional_fields(self, client, mock_s3):
        mock_s3.create_multipart_upload.return_value = {"UploadId": "u"}

        client.init_multipart_upload(bucket="test-bucket", object_key="k")

        mock_s3.create_multipart_upload.assert_called_once_with(
            Bucket="test-bucket", Key="k"
        )

    def test_init_multipart_upload_missing_upload_id(self, client, mock_s3):
        mock_s3.create_multipart_upload.return_value = {}

        with pytest.raises(StorageError, match="UploadId"):
            client.init_multipart_upload(bucket="test-bucket", object_key="k")

    def test_presign_upload_part(self, client, mock_s3):
        mock_s3.generate_presigned_url.return_value = "https://presigned-url"

        url = client.presign_upload_part(
            bucket="test-bucket",
            object_key="uploads/cat.png",
            upload_id="test-upload-id",
            part_number=1,
            expires_in=3600,
        )

        assert url == "https://presigned-url"
        mock_s3.generate_presigned_url.assert_called_once_with(
            "upload_part",
            Params={
                "Bucket": "test-bucket",
                "Key": "uploads/cat.png",
                "UploadId": "test-upload-id",
                "PartNumber": 1,
            },
            ExpiresIn=3600,
        )

    def test_presign_upload_part_empty_url(self, client, mock_s3):
        mock_s3.generate_presigned_url.return_value = ""

        with pytest.raises(StorageError, match="empty"):
            client.presign_upload_part(
                bucket="b", object_key="k", upload_id="u", part_number=1, expires_in=60
            )

    def test_complete_multipart_upload_sorts_parts(self, client, mock_s3):
        parts = [
            CompletedPart(part_number=2, etag="etag2"),
            CompletedPart(part_number=1, etag="etag1"),
        ]

        client.complete_multipart_upload(
            bucket="test-bucket",
            object_key="uploads/cat.png",
            upload_id="test-upload-id",
            parts=parts,
        )

        call_args = mock_s3.complete_multipart_upload.call_args
        assert call_args[1]["Bucket"] == "test-bucket"
        assert call_args[1]["Key"] == "uploads/cat.png"
        assert call_args[1]["UploadId"] == "test-upload-id"
        assert call_args[1]["MultipartUpload"]["Parts"] == [
            {"ETag": "etag1", "PartNumber": 1},
            {"ETag": "etag2", "PartNumber": 2},
        ]

    def test_abort_multipart_upload(self, client, mock_s3):
        client.abort_multipart_upload(
            bucket="test-bucket",
            object_key="uploads/cat.png",
            upload_id="test-upload-id",
        )

        mock_s3.abort_multipart_upload.assert_called_once_with(
            Bucket="test-bucket",
            Key="uploads/cat.png",
            UploadId="test-upload-id",
        )

    @pytest.mark.parametrize(
        ("method", "kwargs", "message"),
        [
            (
                "create_multipart_upload",
                {"bucket": "b", "object_key": "k"},
                "Failed to create multipart upload",
            ),
            (
                "complete_multipart_upload",
                {"bucket": "b", "object_key": "k", "upload_id": "u", "parts": []},
                "Failed to complete multipart upload",
            ),
            (
                "abort_multipart_upload",
                {"bucket": "b", "object_key": "k", "upload_id": "u"},
                "Failed to abort multipart upload",
            ),
        ],
    )
    def test_wraps_boto_errors(self, client, mock_s3, method, kwargs, message):
        getattr(mock_s3, method).side_effect = Exception("boom")
        client_method = {
            "create_multipart_upload": client.init_multipart_upload,
            "complete_multipart_upload": client.complete_multipart_upload,
            "abort_multipart_upload": client.abort_multipart_upload,
        }[method]

        with pytest.raises(StorageError, match=message) as excinfo:
            client_method(**kwargs)

        assert isinstance(excinfo.value.__cause__, Exception)

    def test_presign_error(self, client, mock_s3):
        mock_s3.generate_presigned_url.side_effect = Exception("Presign failed")

        with pytest.raises(StorageError, match="Failed to generate presigned URL"):
            client.presign_upload_part(
                bucket="b", object_key="k", upload_id="u", part_number=1, expires_in=60
            )


class TestS3StorageClientPresignedUrls:
    """Presigning is local to botocore, so a real client is used here."""

    @pytest.fixture
    def client(self):
        return S3StorageClient(
            settings=Settings(
                S3_BUCKET="test-bucket",
                S3_REGION="us-east-1",
                S3_ACCESS_KEY_ID="AKIAEXAMPLE",
                S3_SECRET_ACCESS_KEY="secret-example",
            )
        )

    def test_url_expiry_matches_requested_ttl(self, client):
        url = client.presign_upload_part(
            bucket="test-bucket",
            object_key="uploads/1700000000000-abc/cat.png",
            upload_id="U1",
            part_number=1,
            expires_in=3600,
        )

        parts = urlsplit(url)
        query = parse_qs(parts.query)
        assert query["X-Amz-Expires"] == ["3600"]
        assert query["uploadId"] == ["U1"]
        assert query["partNumber"] == ["1"]
        assert "cat.png" in parts.path
        assert "X-Amz-Signature" in query

    def test_retry_policy_is_bounded(self, client):
        config = client._client.meta.config

        assert config.retries["max_attempts"] == 3
        assert config.signature_version == "s3v4"
