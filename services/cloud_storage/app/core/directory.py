"""Directory validation and creation."""

from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from services.cloud_storage.app.core.constants import FileResourceType
from services.cloud_storage.app.db.repository import CloudStorageRepository
from services.cloud_storage.app.errors import CloudStorageError, ErrorCode
from shared.utils.logging import get_logger

logger = get_logger(__name__)

ROOT_DIRECTORY = "/"
MAX_DIRECTORY_NAME_LENGTH = 128


def normalize_directory_path(path: str) -> str:
    """Normalize a directory path to the stored "/a/b/" form.

    Raises:
        ValueError: If the path is relative or contains "." / ".." segments
    """
    if not path.startswith("/"):
        raise ValueError("directory path must be absolute")

    segments = [segment for segment in path.split("/") if segment]
    if any(segment in (".", "..") for segment in segments):
        raise ValueError("directory path must not contain '.' or '..' segments")

    if not segments:
        return ROOT_DIRECTORY
    return "/" + "/".join(segments) + "/"


def split_directory_path(path: str) -> tuple[str, str]:
    """Split a normalized, non-root directory path into (parent_path, name)."""
    segments = path.strip("/").split("/")
    parent = "/" + "/".join(segments[:-1]) + "/" if len(segments) > 1 else ROOT_DIRECTORY
    return parent, segments[-1]


class DirectoryService:
    """Directory checks for one user's cloud storage."""

    def __init__(self, session: AsyncSession, user_id: UUID):
        """Initialize directory service.

        Args:
            session: Database session
            user_id: Owner of the directories
        """
        self.user_id = user_id
        self.repository = CloudStorageRepository(session)

    async def exists(self, path: str) -> bool:
        """Whether a normalized directory path exists for the user."""
        if path == ROOT_DIRECTORY:
            return True

        parent, name = split_directory_path(path)
        directory = await self.repository.get_directory(self.user_id, parent, name)
        return directory is not None

    async def assert_exists(self, path: str) -> None:
        """Raise DirectoryNotExists unless the directory exists.

        Args:
            path: Normalized directory path
        """
        if not await self.exists(path):
            logger.info(
                "directory_not_exists",
                user_id=str(self.user_id),
                directory_path=path,
            )
            raise CloudStorageError(ErrorCode.DIRECTORY_NOT_EXISTS)

    async def create(self, parent_path: str, name: str) -> str:
        """Create a directory inside an existing parent.

        Args:
            parent_path: Normalized parent directory path
            name: New directory name (a single path segment)

        Returns:
            Normalized path of the new directory

        Raises:
            CloudStorageError: If the name is invalid, the parent is missing
                or the directory already exists
        """
        if not name or "/" in name or name in (".", "..") or len(name) > MAX_DIRECTORY_NAME_LENGTH:
            raise CloudStorageError(
                ErrorCode.PARAMS_CHECK_FAILED,
                "Directory name must be a single path segment",
            )

        await self.assert_exists(parent_path)

        if await self.repository.get_directory(self.user_id, parent_path, name):
            raise CloudStorageError(ErrorCode.DIRECTORY_ALREADY_EXISTS)

        await self.repository.insert_file(
            user_id=self.user_id,
            file_id=uuid4(),
            file_name=name,
            file_size=0,
            file_url="",
            directory_path=parent_path,
            resource_type=FileResourceType.DIRECTORY,
            payload={},
        )

        path = f"{parent_path}{name}/"
        logger.info("directory_created", user_id=str(self.user_id), directory_path=path)
        return path
