"""FastAPI dependency injection."""

from typing import Annotated, AsyncGenerator
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.cloud_storage.app.config import Settings, get_settings
from services.cloud_storage.app.core.directory import DirectoryService
from services.cloud_storage.app.errors import CloudStorageError, ErrorCode
from services.cloud_storage.app.storage import ObjectStorage
from services.cloud_storage.app.upload.service import UploadSessionService
from shared.utils.db import get_db_session
from shared.utils.logging import bind_request_context
from shared.utils.redis import RedisStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency (one transaction per request)."""
    async with get_db_session() as session:
        yield session


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """User id forwarded by the API gateway in X-User-ID.

    Raises:
        CloudStorageError: NeedLoginAgain if the header is missing or malformed
    """
    if not x_user_id:
        raise CloudStorageError(ErrorCode.NEED_LOGIN_AGAIN)
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise CloudStorageError(ErrorCode.NEED_LOGIN_AGAIN)

    bind_request_context(user_id=str(user_id))
    return user_id


def get_ephemeral_store(request: Request) -> RedisStore:
    """Get the Redis store created at startup."""
    return RedisStore(request.app.state.redis)


def get_object_storage(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ObjectStorage:
    """Get object storage over the storage client created at startup."""
    return ObjectStorage(
        client=request.app.state.storage_client,
        domain=settings.storage_domain,
        policy_expires_in=settings.upload_policy_expiry_seconds,
    )


# Type aliases for cleaner function signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserID = Annotated[UUID, Depends(get_current_user_id)]
EphemeralStore = Annotated[RedisStore, Depends(get_ephemeral_store)]
Storage = Annotated[ObjectStorage, Depends(get_object_storage)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_upload_service(
    db: DBSession,
    user_id: CurrentUserID,
    ephemeral_store: EphemeralStore,
    storage: Storage,
    settings: AppSettings,
) -> UploadSessionService:
    """Build the upload service for the requesting user."""
    return UploadSessionService(
        session=db,
        user_id=user_id,
        ephemeral_store=ephemeral_store,
        object_storage=storage,
        settings=settings,
    )


def get_directory_service(db: DBSession, user_id: CurrentUserID) -> DirectoryService:
    """Build the directory service for the requesting user."""
    return DirectoryService(db, user_id)


UploadService = Annotated[UploadSessionService, Depends(get_upload_service)]
Directories = Annotated[DirectoryService, Depends(get_directory_service)]
