"""Team and notification related exceptions."""

from .base import AppPermissionError, NotFoundError, ValidationError


class TeamNotFoundError(NotFoundError):
    def __init__(self, message: str = "Team not found"):
        super().__init__(message, error_code="TEAM_NOT_FOUND")


class TeamMemberNotFoundError(NotFoundError):
    """Raised when a user is not a member of the team."""

    def __init__(self, message: str = "Team member not found"):
        super().__init__(message, error_code="TEAM_MEMBER_NOT_FOUND")


class TeamPermissionError(AppPermissionError):
    """Raised when the caller lacks the team role an action requires."""

    def __init__(self, message: str = "You don't have permission to manage this team"):
        super().__init__(message, error_code="TEAM_PERMISSION_DENIED")


class TeamRuleError(ValidationError):
    """Raised when a team operation breaks a membership rule."""

    def __init__(self, message: str = "Invalid team operation"):
        super().__init__(message, error_code="INVALID_TEAM_OPERATION")


class NotificationNotFoundError(NotFoundError):
    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, error_code="NOTIFICATION_NOT_FOUND")
