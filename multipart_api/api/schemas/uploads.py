"""Pydantic schemas for the multipart upload endpoints.

Field names follow the camelCase wire format existing browser clients send.
Presence of the required fields is checked by the service so that a missing
field yields a 400 "Missing required parameters" rather than a 422.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartUploadRequest(_WireModel):
    file_name: str | None = Field(default=None, alias="fileName", max_length=1024)
    file_type: str | None = Field(default=None, alias="fileType", max_length=255)


class StartUploadOut(_WireModel):
    upload_id: str = Field(serialization_alias="uploadId")
    start_date_time: datetime = Field(serialization_alias="startDateTime")
    key: str


class PartUrlRequest(_WireModel):
    file_name: str | None = Field(default=None, alias="fileName")
    part_number: int | None = Field(default=None, alias="partNumber", strict=True)
    upload_id: str | None = Field(default=None, alias="uploadId")


class PartUrlOut(_WireModel):
    url: str
    expires_in: int = Field(serialization_alias="expiresIn")


class CompletedPartIn(_WireModel):
    """One uploaded part, as echoed back by the client."""

    etag: str = Field(alias="ETag", min_length=1)
    part_number: int = Field(alias="PartNumber", ge=1, le=10000, strict=True)


class CompleteUploadRequest(_WireModel):
    file_name: str | None = Field(default=None, alias="fileName")
    upload_id: str | None = Field(default=None, alias="uploadId")
    parts: list[CompletedPartIn] | None = None


class CompleteUploadOut(_WireModel):
    message: str
    end_date_time: datetime = Field(serialization_alias="endDateTime")
    key: str


class AbortUploadRequest(_WireModel):
    upload_id: str | None = Field(default=None, alias="uploadId")


class AbortUploadOut(_WireModel):
    message: str
    abort_date_time: datetime = Field(serialization_alias="abortDateTime")
    key: str


class LiveSessionsOut(BaseModel):
    live: int


class SweepOut(BaseModel):
    expired: int
    remaining: int
