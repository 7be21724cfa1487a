"""Database repository for cloud storage operations."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from services.cloud_storage.app.core.constants import FileResourceType
from services.cloud_storage.app.db.models import (
    FileModel,
    UsageModel,
    UserFileModel,
    utc_now,
)
from shared.utils.db import get_dialect_name


class CloudStorageRepository:
    """Repository for files, ownership links and usage totals."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_total_usage(self, user_id: UUID) -> int:
        """Get a user's committed usage in bytes (0 if no row yet)."""
        query = select(UsageModel.total_usage).where(UsageModel.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none() or 0

    async def insert_file(
        self,
        user_id: UUID,
        file_id: UUID,
        file_name: str,
        file_size: int,
        file_url: str,
        directory_path: str,
        resource_type: FileResourceType,
        payload: dict[str, Any],
    ) -> FileModel:
        """Insert a file and its ownership link as one unit.

        Both rows are flushed into the session's transaction; neither is
        visible to other sessions until the caller commits.
        """
        file = FileModel(
            file_id=file_id,
            file_name=file_name,
            file_size=file_size,
            file_url=file_url,
            directory_path=directory_path,
            resource_type=resource_type.value,
            payload=payload,
        )
        self.session.add(file)
        await self.session.flush()

        self.session.add(UserFileModel(user_id=user_id, file_id=file_id))
        await self.session.flush()
        return file

    async def increment_total_usage(
        self,
        user_id: UUID,
        file_size: int,
        limit: int,
    ) -> int | None:
        """Atomically add file_size to a user's usage unless it would exceed limit.

        Uses INSERT ... ON CONFLICT (user_id) DO UPDATE ... WHERE so the
        read-add-check-write happens in a single statement.

        Args:
            user_id: Owner of the usage row
            file_size: Bytes to add
            limit: Maximum allowed total

        Returns:
            New total usage, or None if the limit guard rejected the update
        """
        if file_size > limit:
            return None

        now = utc_now()
        insert = sqlite_insert if get_dialect_name(self.session) == "sqlite" else pg_insert

        stmt = insert(UsageModel).values(
            user_id=user_id,
            total_usage=file_size,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UsageModel.user_id],
            set_={
                "total_usage": UsageModel.total_usage + stmt.excluded.total_usage,
                "updated_at": now,
            },
            where=(UsageModel.total_usage + stmt.excluded.total_usage) <= limit,
        ).returning(UsageModel.total_usage)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_directory(
        self,
        user_id: UUID,
        parent_path: str,
        name: str,
    ) -> FileModel | None:
        """Get a user's directory by parent path and name."""
        query = (
            select(FileModel)
            .join(UserFileModel, UserFileModel.file_id == FileModel.file_id)
            .where(
                UserFileModel.user_id == user_id,
                FileModel.directory_path == parent_path,
                FileModel.file_name == name,
                FileModel.resource_type == FileResourceType.DIRECTORY.value,
            )
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def list_files(
        self,
        user_id: UUID,
        directory_path: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[FileModel]:
        """List files and directories directly inside a directory.

        Args:
            user_id: Owner
            directory_path: Normalized directory path
            limit: Maximum results
            offset: Pagination offset

        Returns:
            Directories first, then newest files first
        """
        is_directory = FileModel.resource_type == FileResourceType.DIRECTORY.value
        query = (
            select(FileModel)
            .join(UserFileModel, UserFileModel.file_id == FileModel.file_id)
            .where(
                UserFileModel.user_id == user_id,
                FileModel.directory_path == directory_path,
            )
            .order_by(is_directory.desc(), FileModel.created_at.desc(), FileModel.file_id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
