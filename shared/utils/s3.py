"""Object store clients that issue browser upload policies (S3 or local disk)."""

import base64
import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from typing import TypedDict

import aiofiles
import aiofiles.os
from aiobotocore.session import get_session

from shared.utils.logging import get_logger

logger = get_logger(__name__)

# Error codes S3-compatible stores use for a missing key on HEAD
_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})

_EXPIRATION_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


class UploadPolicy(TypedDict):
    """Signed POST form for a single direct upload."""

    url: str
    fields: dict[str, str]
    policy: str
    signature: str
    expires_at: datetime


class StorageClient(ABC):
    """Issues upload policies for, and checks the presence of, object keys."""

    @abstractmethod
    async def generate_presigned_post(
        self,
        key: str,
        file_size: int,
        expires_in: int = 3600,
    ) -> UploadPolicy:
        """Sign a form that lets a browser upload exactly file_size bytes to key."""

    @abstractmethod
    async def check_object_exists(self, key: str) -> bool:
        """Whether an object has been stored under key."""


class UploadPolicyError(ValueError):
    """A local upload form failed signature or policy checks."""


class LocalStorageClient(StorageClient):
    """Stores objects on local disk; for development and tests.

    Policies follow the S3 POST policy layout (base64 JSON document with
    conditions) and are signed with HMAC-SHA256 over a shared secret.
    ``verify_upload`` checks a posted form against them the way S3 would.
    """

    def __init__(
        self,
        base_path: str,
        bucket: str = "cloud-storage",
        serve_url: str = "http://localhost:8010/objects",
        secret: str = "local-storage-secret",
    ):
        self.bucket = bucket
        self.serve_url = serve_url.rstrip("/")
        self._secret = secret.encode()
        self._root = Path(base_path) / bucket
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("local_storage_initialized", root=str(self._root), bucket=bucket)

    def path_for(self, key: str) -> Path:
        """File backing key.

        Raises:
            ValueError: key is absolute or climbs out of the bucket
        """
        parts = PurePosixPath(key).parts
        if not parts or key.startswith("/") or ".." in parts:
            raise ValueError(f"Invalid object key: {key}")
        return self._root / key

    def _sign(self, policy: str) -> str:
        return base64.b64encode(
            hmac.new(self._secret, policy.encode(), hashlib.sha256).digest()
        ).decode()

    async def generate_presigned_post(
        self,
        key: str,
        file_size: int,
        expires_in: int = 3600,
    ) -> UploadPolicy:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        document = {
            "expiration": expires_at.strftime(_EXPIRATION_FORMAT),
            "conditions": [
                {"bucket": self.bucket},
                {"key": key},
                ["content-length-range", file_size, file_size],
            ],
        }
        policy = base64.b64encode(json.dumps(document).encode()).decode()
        signature = self._sign(policy)

        await aiofiles.os.makedirs(self.path_for(key).parent, exist_ok=True)

        logger.info("upload_policy_signed", storage_type="local", key=key, file_size=file_size)
        return UploadPolicy(
            url=f"{self.serve_url}/{self.bucket}",
            fields={"key": key, "policy": policy, "signature": signature},
            policy=policy,
            signature=signature,
            expires_at=expires_at,
        )

    def verify_upload(self, key: str, policy: str, signature: str, file_size: int) -> None:
        """Check a posted form against the policy it carries.

        Args:
            key: Object key from the form
            policy: Base64 policy document from the form
            signature: Signature from the form
            file_size: Size of the posted body in bytes

        Raises:
            UploadPolicyError: Bad signature, malformed or expired policy,
                or a bucket, key or size condition that does not hold
        """
        if not hmac.compare_digest(self._sign(policy).encode(), signature.encode()):
            raise UploadPolicyError("Signature does not match policy")

        try:
            document = json.loads(base64.b64decode(policy, validate=True))
            expires_at = datetime.strptime(document["expiration"], _EXPIRATION_FORMAT)
            conditions = list(document["conditions"])
        except (ValueError, KeyError, TypeError) as e:
            raise UploadPolicyError("Malformed policy") from e

        if expires_at.replace(tzinfo=timezone.utc) <= datetime.now(timezone.utc):
            raise UploadPolicyError("Policy expired")

        expected = {"bucket": self.bucket, "key": key}
        for condition in conditions:
            if isinstance(condition, dict):
                for name, value in condition.items():
                    if expected.get(name) != value:
                        raise UploadPolicyError(f"Policy condition failed: {name}")
            elif condition[0] == "content-length-range":
                _, low, high = condition
                if not low <= file_size <= high:
                    raise UploadPolicyError("Body size outside content-length-range")

    async def put_object(self, key: str, content: bytes) -> None:
        """Write content under key, replacing any previous object."""
        path = self.path_for(key)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

    async def check_object_exists(self, key: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_for(key))


class S3Client(StorageClient):
    """S3 (or LocalStack/MinIO) via aiobotocore; one client per call."""

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
    ):
        """Initialize S3 client.

        Args:
            bucket: Bucket uploads go to
            region: AWS region
            endpoint_url: Custom endpoint; when set without credentials,
                LocalStack's "test" credentials are used
            access_key: AWS access key id (default credential chain if None)
            secret_key: AWS secret access key
        """
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key = access_key or ("test" if endpoint_url else None)
        self.secret_key = secret_key or ("test" if endpoint_url else None)
        self._session = get_session()

    def _create_client(self):
        return self._session.create_client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
        )

    async def generate_presigned_post(
        self,
        key: str,
        file_size: int,
        expires_in: int = 3600,
    ) -> UploadPolicy:
        """Pre-signed POST whose content-length-range is pinned to file_size.

        S3 refuses a body of any other size, so the recorded size of a
        finished upload matches what is actually stored.
        """
        async with self._create_client() as client:
            response = await client.generate_presigned_post(
                Bucket=self.bucket,
                Key=key,
                Conditions=[["content-length-range", file_size, file_size]],
                ExpiresIn=expires_in,
            )

        fields = response["fields"]
        logger.info("upload_policy_signed", storage_type="s3", bucket=self.bucket, key=key)
        return UploadPolicy(
            url=response["url"],
            fields=fields,
            policy=fields["policy"],
            # SigV4 forms carry x-amz-signature, legacy SigV2 forms carry signature
            signature=fields.get("x-amz-signature") or fields.get("signature"),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )

    async def check_object_exists(self, key: str) -> bool:
        """HEAD the key; only not-found errors mean absent, anything else is raised."""
        async with self._create_client() as client:
            try:
                await client.head_object(Bucket=self.bucket, Key=key)
            except client.exceptions.ClientError as e:
                if e.response["Error"]["Code"] in _NOT_FOUND_CODES:
                    return False
                raise
        return True


def get_storage_client(
    storage_type: str = "s3",
    bucket: str = "cloud-storage",
    region: str = "us-east-1",
    endpoint_url: str | None = None,
    access_key: str | None = None,
    secret_key: str | None = None,
    local_path: str | None = None,
    serve_url: str = "http://localhost:8010/objects",
    local_secret: str = "local-storage-secret",
) -> StorageClient:
    """Build the client for ``storage_type`` ("s3" or "local", case-insensitive).

    S3 uses bucket/region/endpoint/credentials; local storage uses
    bucket/local_path/serve_url/local_secret.

    Raises:
        ValueError: Unknown storage_type, or "local" without local_path
    """
    kind = storage_type.lower()
    logger.info("creating_storage_client", storage_type=kind, bucket=bucket)

    if kind == "s3":
        return S3Client(
            bucket=bucket,
            region=region,
            endpoint_url=endpoint_url,
            access_key=access_key,
            secret_key=secret_key,
        )
    if kind == "local":
        if not local_path:
            raise ValueError("local_path is required for local storage")
        return LocalStorageClient(
            base_path=local_path,
            bucket=bucket,
            serve_url=serve_url,
            secret=local_secret,
        )
    raise ValueError(f"Invalid storage_type: {storage_type}. Use 's3' or 'local'")
