"""Database models and repository."""

from services.cloud_storage.app.db.models import Base, FileModel, UsageModel, UserFileModel
from services.cloud_storage.app.db.repository import CloudStorageRepository

__all__ = [
    "Base",
    "FileModel",
    "UsageModel",
    "UserFileModel",
    "CloudStorageRepository",
]
