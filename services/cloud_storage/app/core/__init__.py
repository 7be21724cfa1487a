"""Core cloud storage domain logic."""

from services.cloud_storage.app.core.classifier import FileClassifier
from services.cloud_storage.app.core.constants import (
    WHITEBOARD_RESOURCE_TYPES,
    FileConvertStep,
    FileResourceType,
)

__all__ = [
    "FileClassifier",
    "FileConvertStep",
    "FileResourceType",
    "WHITEBOARD_RESOURCE_TYPES",
]
