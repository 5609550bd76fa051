# tempshare/core/schemas/files.py
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Optional, List
from datetime import datetime, timezone


def _isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class UploadResponse(BaseModel):
    file_id: str = Field(..., alias="fileId")
    filename: str
    size: int
    expires_at: datetime = Field(..., alias="expiresAt")
    download_url: str = Field(..., alias="downloadUrl")

    model_config = ConfigDict(populate_by_name=True)

    @field_serializer("expires_at")
    def serialize_expires_at(self, value: datetime) -> str:
        return _isoformat(value)


class Uploader(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None


class FileInfoResponse(BaseModel):
    """Публичные метаданные файла"""
    id: str
    filename: str
    content_type: Optional[str] = Field(None, alias="contentType")
    size: int
    expires_at: datetime = Field(..., alias="expiresAt")
    download_count: int = Field(..., alias="downloadCount")
    created_at: datetime = Field(..., alias="createdAt")
    expired: bool = False
    uploader: Uploader

    model_config = ConfigDict(populate_by_name=True)

    @field_serializer("expires_at", "created_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return _isoformat(value)


class FileListItem(BaseModel):
    id: str
    filename: str
    content_type: Optional[str] = Field(None, alias="contentType")
    size: int
    expires_at: datetime = Field(..., alias="expiresAt")
    download_count: int = Field(..., alias="downloadCount")
    created_at: datetime = Field(..., alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_serializer("expires_at", "created_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return _isoformat(value)


class FileListResponse(BaseModel):
    files: List[FileListItem]


class SuccessResponse(BaseModel):
    success: bool = True
