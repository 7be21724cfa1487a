"""Upload request/response schemas."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from services.cloud_storage.app.core.directory import normalize_directory_path


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadStartRequest(CamelModel):
    """Request for an upload slot."""

    file_name: str = Field(..., description="Original filename", min_length=1, max_length=128)
    file_size: int = Field(..., description="File size in bytes", gt=0)
    target_directory_path: str = Field(..., description="Directory the file is uploaded into")

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """Reject names that could escape the object path."""
        if "/" in v or "\\" in v or "\x00" in v:
            raise ValueError("file name must not contain path separators")
        return v

    @field_validator("target_directory_path")
    @classmethod
    def validate_target_directory_path(cls, v: str) -> str:
        """Normalize to the stored "/a/b/" form."""
        return normalize_directory_path(v)


class UploadStartResponse(CamelModel):
    """Upload credential returned by start."""

    file_id: UUID
    object_path: str
    storage_domain: str
    policy: str
    signature: str
    upload_url: str = Field(..., description="URL the multipart form is posted to")
    upload_fields: dict[str, Any] = Field(
        default_factory=dict,
        description="All form fields the object store expects alongside the file",
    )


class UploadFinishRequest(CamelModel):
    """Request to confirm an upload."""

    file_id: UUID
