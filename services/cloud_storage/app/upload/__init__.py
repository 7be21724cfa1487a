"""Upload session workflow."""

from services.cloud_storage.app.upload.service import UploadSessionService
from services.cloud_storage.app.upload.schemas import (
    UploadFinishRequest,
    UploadStartRequest,
    UploadStartResponse,
)

__all__ = [
    "UploadSessionService",
    "UploadFinishRequest",
    "UploadStartRequest",
    "UploadStartResponse",
]
