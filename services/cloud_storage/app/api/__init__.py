"""API routes for Cloud Storage."""

from services.cloud_storage.app.api.files import router as files_router
from services.cloud_storage.app.api.health import router as health_router
from services.cloud_storage.app.api.objects import router as objects_router
from services.cloud_storage.app.api.upload import router as upload_router

__all__ = [
    "files_router",
    "health_router",
    "objects_router",
    "upload_router",
]
