"""Upload API routes."""

from fastapi import APIRouter

from services.cloud_storage.app.api.schemas import ErrorResponse
from services.cloud_storage.app.dependencies import UploadService
from services.cloud_storage.app.upload.schemas import (
    UploadFinishRequest,
    UploadStartRequest,
    UploadStartResponse,
)

router = APIRouter(
    prefix="/cloud-storage/upload",
    tags=["Upload"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.post("/start", response_model=UploadStartResponse)
async def upload_start(
    request: UploadStartRequest,
    upload_service: UploadService,
) -> UploadStartResponse:
    """Reserve an upload slot.

    Post the file to ``uploadUrl`` with ``uploadFields``, then call
    /cloud-storage/upload/finish within the session lifetime (20 minutes).
    """
    return await upload_service.start(request)


@router.post("/finish")
async def upload_finish(
    request: UploadFinishRequest,
    upload_service: UploadService,
) -> dict:
    """Confirm that the file reached the object store and record it."""
    await upload_service.finish(request)
    return {}
