"""File and quota related exceptions."""

from .base import BaseAppException, NotFoundError, ValidationError


class UserFileNotFoundError(NotFoundError):
    """Raised when a file does not exist or is not owned by the caller."""

    def __init__(self, message: str = "File not found"):
        super().__init__(message, error_code="FILE_NOT_FOUND")


class NoFileProvidedError(ValidationError):
    def __init__(self, message: str = "No file uploaded"):
        super().__init__(message, error_code="NO_FILE")


class FileTooLargeError(ValidationError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, max_size: int):
        super().__init__(
            f"File too large. Maximum size is {max_size} bytes",
            error_code="FILE_TOO_LARGE",
            details={"max_size": max_size},
        )


class UnsupportedFileTypeError(ValidationError):
    """Raised when the file extension is not on the allow-list."""

    def __init__(self, extension: str):
        label = f".{extension}" if extension else "(none)"
        super().__init__(
            f"File type not allowed: {label}",
            error_code="UNSUPPORTED_FILE_TYPE",
            details={"extension": extension},
        )


class QuotaExceededError(ValidationError):
    """Raised when an upload would push used space past the quota."""

    def __init__(self, requested: int, available: int):
        super().__init__(
            "Storage capacity exceeded",
            error_code="QUOTA_EXCEEDED",
            details={"requested": requested, "available": max(available, 0)},
        )


class FileLifecycleError(BaseAppException):
    """Raised when an upload failed after its bytes were written."""

    def __init__(self, message: str = "File upload could not be completed"):
        super().__init__(message, status_code=500, error_code="FILE_LIFECYCLE_ERROR")
