"""Map file names to resource types."""

from services.cloud_storage.app.core.constants import FileResourceType

_EXTENSION_TYPES: dict[str, FileResourceType] = {
    ".pptx": FileResourceType.WHITEBOARD_PROJECTOR,
    ".ppt": FileResourceType.WHITEBOARD_CONVERT,
    ".pdf": FileResourceType.WHITEBOARD_CONVERT,
    ".doc": FileResourceType.WHITEBOARD_CONVERT,
    ".docx": FileResourceType.WHITEBOARD_CONVERT,
    ".ice": FileResourceType.LOCAL_COURSEWARE,
    ".vf": FileResourceType.LOCAL_COURSEWARE,
}


def get_extension(file_name: str) -> str:
    """Return the extension including the dot ("" if none).

    The extension runs from the last dot of the base name to its end, so a
    trailing dot counts ("a." -> ".") and only the last suffix is taken
    ("a.tar.gz" -> ".gz"). A dot that starts the name is not an extension
    (".env" -> "").
    """
    name = file_name.rstrip("/").rsplit("/", 1)[-1]
    index = name.rfind(".")
    if index <= 0 or name == "..":
        return ""
    return name[index:]


class FileClassifier:
    """Classifies uploads by file extension."""

    def classify(self, file_name: str) -> FileResourceType:
        """Resource type for a file name; unknown extensions are normal resources."""
        return _EXTENSION_TYPES.get(
            get_extension(file_name).lower(),
            FileResourceType.NORMAL_RESOURCES,
        )
