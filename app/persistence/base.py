"""Persistence adapter interface.

Every backend implements this class. Inserts return the new row id; updates
and deletes return the number of affected rows, where 0 means the target was
not found. Failures raise :class:`~app.persistence.errors.DataAccessError`;
only :meth:`PersistenceAdapter.test_connection` reports them as a boolean.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from app.persistence.records import (
    ActivityDay,
    ActivityRecord,
    FileRecord,
    FileTypeStat,
    NotificationRecord,
    StorageRecord,
    TeamMemberRecord,
    TeamRecord,
    UserRecord,
    UserStats,
)


class PersistenceAdapter(ABC):
    """Uniform data-access interface over the configured backend."""

    type: str

    # ----- lifecycle -----

    async def initialize(self) -> None:
        """Prepare the backend for use. Default is a no-op."""

    @abstractmethod
    async def test_connection(self) -> bool: ...

    @abstractmethod
    def connection_info(self) -> dict[str, Any]: ...

    @abstractmethod
    async def close(self) -> None: ...

    # ----- users -----

    @abstractmethod
    async def insert_user(self, username: str, email: str, password_hash: str) -> int: ...

    @abstractmethod
    async def find_user_by_email(self, email: str) -> UserRecord | None: ...

    @abstractmethod
    async def find_user_by_username(self, username: str) -> UserRecord | None: ...

    @abstractmethod
    async def find_user_by_id(self, user_id: int) -> UserRecord | None: ...

    # ----- files -----

    @abstractmethod
    async def insert_file(
        self,
        user_id: int,
        filename: str,
        original_name: str,
        size: int,
        type: str | None,
        path: str,
    ) -> int: ...

    @abstractmethod
    async def find_files_by_user_id(self, user_id: int) -> list[FileRecord]: ...

    @abstractmethod
    async def find_file_by_id(self, file_id: int, user_id: int) -> FileRecord | None: ...

    @abstractmethod
    async def find_file_by_filename(self, filename: str, user_id: int) -> FileRecord | None: ...

    @abstractmethod
    async def delete_file(self, file_id: int, user_id: int) -> int: ...

    # ----- storage allocation -----

    @abstractmethod
    async def find_storage_by_user_id(self, user_id: int) -> StorageRecord | None: ...

    @abstractmethod
    async def insert_storage(self, user_id: int, total_space: int, used_space: int = 0) -> int: ...

    @abstractmethod
    async def update_storage_used(self, user_id: int, used_space: int) -> int: ...

    @abstractmethod
    async def increment_storage_used(self, user_id: int, amount: int) -> int:
        """Add ``amount`` only if the result stays within the quota."""

    @abstractmethod
    async def decrement_storage_used(self, user_id: int, amount: int) -> int:
        """Subtract ``amount``, never going below zero."""

    # ----- activities -----

    @abstractmethod
    async def insert_activity(
        self, user_id: int, action: str, metadata: dict[str, Any] | None = None
    ) -> int: ...

    @abstractmethod
    async def find_activities_by_user_id(
        self, user_id: int, limit: int = 20
    ) -> list[ActivityRecord]: ...

    # ----- notifications -----

    @abstractmethod
    async def insert_notification(
        self, user_id: int, message: str, type: str = "info", category: str = "general"
    ) -> int: ...

    @abstractmethod
    async def find_notifications_by_user_id(
        self, user_id: int, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> list[NotificationRecord]: ...

    @abstractmethod
    async def mark_notification_as_read(self, notification_id: int, user_id: int) -> int: ...

    @abstractmethod
    async def mark_all_notifications_as_read(self, user_id: int) -> int: ...

    @abstractmethod
    async def delete_notification(self, notification_id: int, user_id: int) -> int: ...

    @abstractmethod
    async def delete_notifications(self, notification_ids: Sequence[int], user_id: int) -> int: ...

    @abstractmethod
    async def delete_all_notifications(self, user_id: int) -> int: ...

    @abstractmethod
    async def count_unread_notifications(self, user_id: int) -> int: ...

    # ----- teams -----

    @abstractmethod
    async def insert_team(self, name: str, description: str | None, created_by: int) -> int: ...

    @abstractmethod
    async def create_team_with_admin(
        self, name: str, description: str | None, created_by: int
    ) -> int:
        """Insert a team and its creator's admin membership."""

    @abstractmethod
    async def find_team_by_id(self, team_id: int) -> TeamRecord | None: ...

    @abstractmethod
    async def find_teams_by_user_id(self, user_id: int) -> list[TeamRecord]: ...

    @abstractmethod
    async def find_teams_created_by(self, user_id: int) -> list[TeamRecord]: ...

    @abstractmethod
    async def insert_team_member(self, team_id: int, user_id: int, role: str = "member") -> int: ...

    @abstractmethod
    async def find_team_member(self, team_id: int, user_id: int) -> str | None:
        """Return the member's role, or None if the user is not in the team."""

    @abstractmethod
    async def find_team_members_by_user_id(self, user_id: int) -> list[TeamMemberRecord]: ...

    @abstractmethod
    async def check_team_admin(self, team_id: int, user_id: int) -> bool: ...

    @abstractmethod
    async def check_team_owner(self, team_id: int, user_id: int) -> bool: ...

    @abstractmethod
    async def delete_team(self, team_id: int) -> int: ...

    @abstractmethod
    async def remove_team_member(self, team_id: int, user_id: int) -> int: ...

    # ----- aggregates -----

    @abstractmethod
    async def get_user_stats(self, user_id: int) -> UserStats | None: ...

    @abstractmethod
    async def get_file_type_stats(self, user_id: int) -> list[FileTypeStat]: ...

    @abstractmethod
    async def get_recent_activity(self, user_id: int, days: int = 7) -> list[ActivityDay]: ...

    # ----- maintenance -----

    @abstractmethod
    async def cleanup_old_notifications(self, days: int = 30) -> int: ...

    @abstractmethod
    async def cleanup_old_activities(self, days: int = 90) -> int: ...
