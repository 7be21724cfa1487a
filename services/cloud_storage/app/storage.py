"""Object storage access for cloud storage uploads."""

from services.cloud_storage.app.errors import CloudStorageError, ErrorCode
from shared.utils.logging import get_logger
from shared.utils.s3 import StorageClient, UploadPolicy

logger = get_logger(__name__)


class ObjectStorage:
    """Upload policies and existence checks against the configured bucket."""

    def __init__(
        self,
        client: StorageClient,
        domain: str,
        policy_expires_in: int = 3600,
    ):
        """Initialize object storage.

        Args:
            client: S3 or local storage client
            domain: Public base URL of the bucket
            policy_expires_in: Lifetime of generated upload policies in seconds
        """
        self.client = client
        self.domain = domain.rstrip("/")
        self.policy_expires_in = policy_expires_in

    def file_url(self, object_path: str) -> str:
        """Public URL of an object."""
        return f"{self.domain}/{object_path}"

    async def policy_template(self, object_path: str, file_size: int) -> UploadPolicy:
        """Signed form policy allowing exactly one upload of file_size bytes to object_path."""
        return await self.client.generate_presigned_post(
            key=object_path,
            file_size=file_size,
            expires_in=self.policy_expires_in,
        )

    async def assert_exists(self, object_path: str) -> None:
        """Raise FileNotFound unless the object has been uploaded."""
        if not await self.client.check_object_exists(object_path):
            logger.info("object_not_found", object_path=object_path)
            raise CloudStorageError(ErrorCode.FILE_NOT_FOUND)
