"""Directory and file listing API routes."""

from fastapi import APIRouter, Query

from services.cloud_storage.app.api.schemas import (
    DirectoryCreateRequest,
    DirectoryCreateResponse,
    FileItem,
    FileListResponse,
)
from services.cloud_storage.app.core.directory import normalize_directory_path
from services.cloud_storage.app.db.repository import CloudStorageRepository
from services.cloud_storage.app.dependencies import CurrentUserID, DBSession, Directories
from services.cloud_storage.app.errors import CloudStorageError, ErrorCode

router = APIRouter(prefix="/cloud-storage", tags=["Files"])


@router.post("/directory/create", response_model=DirectoryCreateResponse)
async def create_directory(
    request: DirectoryCreateRequest,
    directories: Directories,
) -> DirectoryCreateResponse:
    """Create a directory inside an existing one."""
    path = await directories.create(request.parent_directory_path, request.directory_name)
    return DirectoryCreateResponse(directory_path=path)


@router.get("/files", response_model=FileListResponse)
async def list_files(
    user_id: CurrentUserID,
    db: DBSession,
    directories: Directories,
    directory_path: str = Query("/", alias="directoryPath"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> FileListResponse:
    """List a directory and report the user's committed usage."""
    try:
        path = normalize_directory_path(directory_path)
    except ValueError as e:
        raise CloudStorageError(ErrorCode.PARAMS_CHECK_FAILED, str(e))

    await directories.assert_exists(path)

    repository = CloudStorageRepository(db)
    files = await repository.list_files(user_id, path, limit=limit, offset=offset)

    return FileListResponse(
        total_usage=await repository.get_total_usage(user_id),
        directory_path=path,
        files=[
            FileItem(
                file_id=file.file_id,
                file_name=file.file_name,
                file_size=file.file_size,
                file_url=file.file_url,
                resource_type=file.resource_type,
                payload=file.payload,
                created_at=file.created_at,
            )
            for file in files
        ],
    )
