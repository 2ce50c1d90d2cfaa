"""Object storage errors."""


class ObjectStorageError(Exception):
    """The WebDAV server rejected a request or could not be reached."""

    def __init__(self, message: str, *, path: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.status_code = status_code


class ObjectNotFoundError(ObjectStorageError):
    """The requested object does not exist."""
