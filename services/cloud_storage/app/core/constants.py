"""Cloud storage resource types and conversion states."""

from enum import Enum


class FileResourceType(str, Enum):
    """Category of a stored file, deciding the shape of its payload."""

    DIRECTORY = "Directory"
    WHITEBOARD_CONVERT = "WhiteboardConvert"
    WHITEBOARD_PROJECTOR = "WhiteboardProjector"
    LOCAL_COURSEWARE = "LocalCourseware"
    NORMAL_RESOURCES = "NormalResources"


class FileConvertStep(str, Enum):
    """Progress of the whiteboard conversion pipeline for a file."""

    NONE = "None"
    CONVERTING = "Converting"
    DONE = "Done"
    FAILED = "Failed"


# Resource types that go through whiteboard conversion after upload
WHITEBOARD_RESOURCE_TYPES = frozenset(
    {
        FileResourceType.WHITEBOARD_CONVERT,
        FileResourceType.WHITEBOARD_PROJECTOR,
    }
)
