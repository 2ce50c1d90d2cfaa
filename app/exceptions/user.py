"""User and credential related exceptions."""

from .base import AuthenticationError, NotFoundError, ValidationError


class UserNotFoundError(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, error_code="USER_NOT_FOUND")


class DuplicateUserError(ValidationError):
    """Raised when the username or email is already registered."""

    def __init__(self, message: str = "Username or email already exists"):
        super().__init__(message, error_code="USER_ALREADY_EXISTS")


class WeakPasswordError(ValidationError):
    def __init__(self, min_length: int):
        super().__init__(
            f"Password must be at least {min_length} characters",
            error_code="WEAK_PASSWORD",
            details={"min_length": min_length},
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised for both unknown emails and wrong passwords."""

    def __init__(self):
        super().__init__("Invalid credentials", error_code="INVALID_CREDENTIALS")
