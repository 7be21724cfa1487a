"""Two-phase (start/finish) upload workflow with quota enforcement."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from services.cloud_storage.app.config import Settings, get_settings
from services.cloud_storage.app.core.classifier import FileClassifier, get_extension
from services.cloud_storage.app.core.constants import (
    WHITEBOARD_RESOURCE_TYPES,
    FileConvertStep,
    FileResourceType,
)
from services.cloud_storage.app.core.directory import DirectoryService
from services.cloud_storage.app.db.repository import CloudStorageRepository
from services.cloud_storage.app.errors import CloudStorageError, ErrorCode
from services.cloud_storage.app.storage import ObjectStorage
from services.cloud_storage.app.upload.schemas import (
    UploadFinishRequest,
    UploadStartRequest,
    UploadStartResponse,
)
from shared.utils.logging import get_logger
from shared.utils.metrics import create_counter
from shared.utils.redis import RedisStore

logger = get_logger(__name__)

UPLOADS_STARTED = create_counter(
    "cloud_storage_uploads_started_total",
    "Upload sessions created",
)
UPLOADS_FINISHED = create_counter(
    "cloud_storage_uploads_finished_total",
    "Uploads recorded after confirmation",
)
UPLOADS_REJECTED = create_counter(
    "cloud_storage_uploads_rejected_total",
    "Upload requests rejected by quota or session checks",
    ["error_code"],
)

SESSION_KEY_PREFIX = "cloud_storage:upload"
SESSION_FIELDS = [
    "fileName",
    "fileSize",
    "targetDirectoryPath",
    "fileResourceType",
    "objectPath",
]


def session_key(user_id: UUID | str, file_id: UUID | str) -> str:
    """Redis key of an upload session; pass "*" as file_id for a scan pattern."""
    return f"{SESSION_KEY_PREFIX}:{user_id}:{file_id}"


def _parse_size(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_resource_type(value: str | None) -> FileResourceType | None:
    try:
        return FileResourceType(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class UploadSession:
    """In-flight upload between start and finish."""

    file_name: str
    file_size: int
    target_directory_path: str
    file_resource_type: FileResourceType
    object_path: str


class UploadSessionService:
    """Upload session lifecycle for one user.

    ``start`` checks quota and issues an upload policy, the client uploads
    straight to the object store, and ``finish`` records the file and its
    usage. Sessions live in Redis with a TTL, which is the only way an
    abandoned upload is cancelled.

    Quota checks read Redis and the database without locking; two
    concurrent starts can both be admitted. The usage increment written by
    ``finish`` is guarded in SQL, so committed usage never exceeds the limit.
    """

    def __init__(
        self,
        session: AsyncSession,
        user_id: UUID,
        ephemeral_store: RedisStore,
        object_storage: ObjectStorage,
        settings: Settings | None = None,
        directory_service: DirectoryService | None = None,
        classifier: FileClassifier | None = None,
    ):
        """Initialize upload service.

        Args:
            session: Database session (the ambient transaction)
            user_id: User performing the upload
            ephemeral_store: Store holding in-flight upload sessions
            object_storage: Object storage for policies and existence checks
            settings: Quota and path settings (defaults to environment settings)
            directory_service: Directory validator (defaults to one on ``session``)
            classifier: File classifier
        """
        self.session = session
        self.user_id = user_id
        self.ephemeral_store = ephemeral_store
        self.object_storage = object_storage
        self.settings = settings or get_settings()
        self.repository = CloudStorageRepository(session)
        self.directory_service = directory_service or DirectoryService(session, user_id)
        self.classifier = classifier or FileClassifier()

    async def start(self, request: UploadStartRequest) -> UploadStartResponse:
        """Reserve an upload slot and return the signed upload credential.

        Args:
            request: File name, size and target directory

        Returns:
            File id, object path and the policy/signature for the direct upload

        Raises:
            CloudStorageError: UploadConcurrentLimit, NotEnoughTotalUsage or
                DirectoryNotExists
        """
        await self.assert_concurrent_limit()
        total_usage = await self.get_total_usage_by_updated(request.file_size)
        await self.assert_concurrent_file_size(total_usage)
        await self.directory_service.assert_exists(request.target_directory_path)

        resource_type = self.classifier.classify(request.file_name)
        file_id = uuid4()
        object_path = self.generate_object_path(
            self.settings.prefix_path,
            request.file_name,
            file_id,
        )

        # A failed signing call must not hold a concurrency slot
        upload_policy = await self.object_storage.policy_template(object_path, request.file_size)

        await self.ephemeral_store.hmset(
            session_key(self.user_id, file_id),
            {
                "fileName": request.file_name,
                "fileSize": request.file_size,
                "targetDirectoryPath": request.target_directory_path,
                "fileResourceType": resource_type.value,
                "objectPath": object_path,
            },
            self.settings.upload_session_ttl_seconds,
        )

        UPLOADS_STARTED.inc()
        logger.info(
            "upload_started",
            user_id=str(self.user_id),
            file_id=str(file_id),
            file_size=request.file_size,
            resource_type=resource_type.value,
            object_path=object_path,
        )

        return UploadStartResponse(
            file_id=file_id,
            object_path=object_path,
            storage_domain=self.object_storage.domain,
            policy=upload_policy["policy"],
            signature=upload_policy["signature"],
            upload_url=upload_policy["url"],
            upload_fields=upload_policy["fields"],
        )

    async def finish(self, request: UploadFinishRequest) -> None:
        """Confirm an upload: record the file, add its size to usage, drop the session.

        Args:
            request: Id returned by ``start``

        Raises:
            CloudStorageError: FileNotFound (expired/unknown session or object
                missing from storage), DirectoryNotExists or NotEnoughTotalUsage
        """
        file_id = request.file_id
        upload = await self.get_upload_session(file_id)

        # The directory may have been removed while the client was uploading
        await self.directory_service.assert_exists(upload.target_directory_path)
        await self.object_storage.assert_exists(upload.object_path)
        await self.get_total_usage_by_updated(upload.file_size)

        total_usage = await self.repository.increment_total_usage(
            self.user_id,
            upload.file_size,
            self.settings.total_size_limit,
        )
        if total_usage is None:
            raise self._reject(
                ErrorCode.NOT_ENOUGH_TOTAL_USAGE,
                "usage_increment_rejected",
                file_size=upload.file_size,
                preset_total_size=self.settings.total_size_limit,
            )

        await self.repository.insert_file(
            user_id=self.user_id,
            file_id=file_id,
            file_name=upload.file_name,
            file_size=upload.file_size,
            file_url=self.object_storage.file_url(upload.object_path),
            directory_path=upload.target_directory_path,
            resource_type=upload.file_resource_type,
            payload=self.generate_file_payload(
                upload.file_resource_type,
                self.settings.whiteboard_convert_region,
            ),
        )

        # The session outlives a failed commit so finish can be retried
        await self.session.commit()
        await self.ephemeral_store.delete(session_key(self.user_id, file_id))

        UPLOADS_FINISHED.inc()
        logger.info(
            "upload_finished",
            user_id=str(self.user_id),
            file_id=str(file_id),
            file_size=upload.file_size,
            total_usage=total_usage,
        )

    async def assert_concurrent_limit(self) -> None:
        """Reject when the user already has ``concurrent_limit`` live sessions."""
        limit = self.settings.concurrent_limit
        uploading = await self.ephemeral_store.scan(session_key(self.user_id, "*"), limit + 1)

        if len(uploading) >= limit:
            raise self._reject(
                ErrorCode.UPLOAD_CONCURRENT_LIMIT,
                "upload_concurrent_limit",
                uploading=len(uploading),
                concurrent_limit=limit,
            )

    async def get_total_usage_by_updated(self, file_size: int) -> int:
        """Committed usage plus file_size, rejected if over the total size limit.

        Returns:
            The projected total usage
        """
        total_usage = await self.repository.get_total_usage(self.user_id) + file_size

        if total_usage > self.settings.total_size_limit:
            raise self._reject(
                ErrorCode.NOT_ENOUGH_TOTAL_USAGE,
                "total_usage_over_limit",
                total_usage=total_usage,
                preset_total_size=self.settings.total_size_limit,
            )

        return total_usage

    async def assert_concurrent_file_size(
        self,
        base_total: int,
        exclude_file_id: UUID | None = None,
    ) -> None:
        """Reject when base_total plus every other live session's size exceeds the limit.

        Args:
            base_total: Projected usage already including the current file
            exclude_file_id: Session not to count again (the current one, if live)
        """
        keys = await self.ephemeral_store.scan(
            session_key(self.user_id, "*"),
            self.settings.concurrent_limit + 1,
        )
        excluded = session_key(self.user_id, exclude_file_id) if exclude_file_id else None

        uploading_total = base_total
        for key in keys:
            if key == excluded:
                continue
            [file_size] = await self.ephemeral_store.hmget(key, ["fileSize"])
            uploading_total += _parse_size(file_size) or 0

        if uploading_total > self.settings.total_size_limit:
            raise self._reject(
                ErrorCode.NOT_ENOUGH_TOTAL_USAGE,
                "uploading_total_over_limit",
                uploading_file_total_size=uploading_total,
                preset_total_size=self.settings.total_size_limit,
            )

    async def get_upload_session(self, file_id: UUID) -> UploadSession:
        """Load an in-flight session, raising FileNotFound if expired, unknown or corrupt."""
        file_name, raw_size, directory_path, raw_type, object_path = (
            await self.ephemeral_store.hmget(session_key(self.user_id, file_id), SESSION_FIELDS)
        )
        file_size = _parse_size(raw_size)
        resource_type = _parse_resource_type(raw_type)

        if not file_name or file_size is None or not directory_path or not resource_type or not object_path:
            raise self._reject(
                ErrorCode.FILE_NOT_FOUND,
                "upload_session_not_found",
                file_id=str(file_id),
                file_name_is_empty=not file_name,
                file_size_is_invalid=file_size is None,
                target_directory_path_is_empty=not directory_path,
                file_resource_type_is_empty=not resource_type,
                object_path_is_empty=not object_path,
            )

        return UploadSession(
            file_name=file_name,
            file_size=file_size,
            target_directory_path=directory_path,
            file_resource_type=resource_type,
            object_path=object_path,
        )

    def _reject(self, code: ErrorCode, event: str, **context: Any) -> CloudStorageError:
        UPLOADS_REJECTED.labels(error_code=code.value).inc()
        logger.info(event, user_id=str(self.user_id), error_code=code.value, **context)
        return CloudStorageError(code)

    @staticmethod
    def generate_object_path(
        prefix: str,
        file_name: str,
        file_id: UUID,
        now: datetime | None = None,
    ) -> str:
        """Object key for an upload, e.g. ``PREFIX/2021-10/19/UUID/UUID.txt``.

        The date is the UTC date at ``start``; the result is stored in the
        session so ``finish`` never recomputes it.
        """
        now = now or datetime.now(timezone.utc)
        return f"{prefix}/{now:%Y-%m}/{now:%d}/{file_id}/{file_id}{get_extension(file_name)}"

    @staticmethod
    def generate_file_payload(resource_type: FileResourceType, region: str) -> dict[str, Any]:
        """Initial payload: conversion state for whiteboard files, empty otherwise."""
        if resource_type in WHITEBOARD_RESOURCE_TYPES:
            return {"region": region, "convertStep": FileConvertStep.NONE.value}
        return {}
