"""Error codes surfaced to Cloud Storage API callers."""

from enum import Enum


class ErrorCode(str, Enum):
    """Caller-visible error codes."""

    PARAMS_CHECK_FAILED = "ParamsCheckFailed"
    NEED_LOGIN_AGAIN = "NeedLoginAgain"
    UPLOAD_CONCURRENT_LIMIT = "UploadConcurrentLimit"
    NOT_ENOUGH_TOTAL_USAGE = "NotEnoughTotalUsage"
    FILE_NOT_FOUND = "FileNotFound"
    DIRECTORY_NOT_EXISTS = "DirectoryNotExists"
    DIRECTORY_ALREADY_EXISTS = "DirectoryAlreadyExists"


_STATUS_CODES = {
    ErrorCode.NEED_LOGIN_AGAIN: 401,
    ErrorCode.FILE_NOT_FOUND: 404,
    ErrorCode.DIRECTORY_NOT_EXISTS: 404,
    ErrorCode.DIRECTORY_ALREADY_EXISTS: 409,
}

_MESSAGES = {
    ErrorCode.PARAMS_CHECK_FAILED: "Request parameters are invalid",
    ErrorCode.NEED_LOGIN_AGAIN: "Not authenticated",
    ErrorCode.UPLOAD_CONCURRENT_LIMIT: "Too many uploads in progress",
    ErrorCode.NOT_ENOUGH_TOTAL_USAGE: "Not enough storage space left",
    ErrorCode.FILE_NOT_FOUND: "File not found",
    ErrorCode.DIRECTORY_NOT_EXISTS: "Directory does not exist",
    ErrorCode.DIRECTORY_ALREADY_EXISTS: "Directory already exists",
}


class CloudStorageError(Exception):
    """Typed error carrying an ErrorCode."""

    def __init__(self, code: ErrorCode, message: str | None = None):
        self.code = code
        self.message = message or _MESSAGES[code]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status the error maps to."""
        return _STATUS_CODES.get(self.code, 400)
