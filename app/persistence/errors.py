"""Data-access errors raised by every persistence backend."""


class DataAccessError(Exception):
    """A persistence operation failed (connection, query, or remote API error)."""

    def __init__(self, message: str, *, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class DuplicateRecordError(DataAccessError):
    """A unique constraint rejected the write."""
