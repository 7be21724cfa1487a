"""API request/response schemas for directories and listings."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from services.cloud_storage.app.core.directory import normalize_directory_path
from services.cloud_storage.app.upload.schemas import CamelModel


class ErrorResponse(BaseModel):
    """Error body returned for every CloudStorageError."""

    detail: str
    error_code: str


class DirectoryCreateRequest(CamelModel):
    """Request to create a directory."""

    parent_directory_path: str = Field(..., description="Existing parent directory")
    directory_name: str = Field(..., min_length=1, max_length=128)

    @field_validator("parent_directory_path")
    @classmethod
    def validate_parent_directory_path(cls, v: str) -> str:
        """Normalize to the stored "/a/b/" form."""
        return normalize_directory_path(v)


class DirectoryCreateResponse(CamelModel):
    """Created directory."""

    directory_path: str


class FileItem(CamelModel):
    """One entry of a directory listing."""

    file_id: UUID
    file_name: str
    file_size: int
    file_url: str
    resource_type: str
    payload: dict[str, Any]
    created_at: datetime


class FileListResponse(CamelModel):
    """Directory listing plus the user's committed usage."""

    total_usage: int
    directory_path: str
    files: list[FileItem]
