"""Object routes for local filesystem storage.

With ``storage_type="local"`` upload policies point browsers here instead of
at S3: the signed form is posted to ``/objects/{bucket}`` and stored objects
are served from ``/objects/{bucket}/{key}``.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, UploadFile, status
from fastapi.responses import FileResponse

from shared.utils.logging import get_logger
from shared.utils.s3 import LocalStorageClient, UploadPolicyError

router = APIRouter(prefix="/objects", tags=["objects"])

logger = get_logger(__name__)


def get_local_storage(request: Request) -> LocalStorageClient:
    """Get the storage client created at startup, if it is the local one."""
    client = getattr(request.app.state, "storage_client", None)
    if not isinstance(client, LocalStorageClient):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Local object storage is not enabled",
        )
    return client


LocalStorage = Annotated[LocalStorageClient, Depends(get_local_storage)]


def _assert_bucket(storage: LocalStorageClient, bucket: str) -> None:
    if bucket != storage.bucket:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bucket not found")


@router.post("/{bucket}", status_code=status.HTTP_204_NO_CONTENT)
async def upload_object(
    bucket: str,
    storage: LocalStorage,
    key: Annotated[str, Form()],
    policy: Annotated[str, Form()],
    signature: Annotated[str, Form()],
    file: UploadFile,
) -> Response:
    """Accept a browser form upload signed by ``start``.

    Mirrors an S3 POST: the policy signature, expiration, bucket, key and
    content-length-range are checked before anything is written.
    """
    _assert_bucket(storage, bucket)
    content = await file.read()

    try:
        storage.verify_upload(key, policy, signature, len(content))
        storage.path_for(key)
    except ValueError as e:
        logger.warning("upload_form_rejected", key=key, size=len(content), reason=str(e))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    await storage.put_object(key, content)

    logger.info("object_uploaded", key=key, size=len(content))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{bucket}/{key:path}")
async def download_object(bucket: str, key: str, storage: LocalStorage) -> FileResponse:
    """Serve a stored object; file URLs resolve here when storage is local."""
    _assert_bucket(storage, bucket)

    try:
        exists = await storage.check_object_exists(key)
    except ValueError:
        exists = False
    if not exists:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")

    path = storage.path_for(key)
    return FileResponse(path=path, filename=path.name)
