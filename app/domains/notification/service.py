"""Notification service layer."""

import logging
from collections.abc import Sequence

from app.exceptions.team import NotificationNotFoundError
from app.persistence.base import PersistenceAdapter
from app.persistence.records import NotificationRecord

logger = logging.getLogger(__name__)


class NotificationService:
    """Service class for a user's notifications."""

    def __init__(self, persistence: PersistenceAdapter):
        self.persistence = persistence

    async def list_notifications(
        self, user_id: int, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> list[NotificationRecord]:
        return await self.persistence.find_notifications_by_user_id(user_id, unread_only, limit, offset)

    async def unread_count(self, user_id: int) -> int:
        return await self.persistence.count_unread_notifications(user_id)

    async def create(self, user_id: int, message: str, type: str = "info", category: str = "general") -> int:
        return await self.persistence.insert_notification(user_id, message, type, category)

    async def mark_read(self, user_id: int, notification_id: int) -> None:
        if not await self.persistence.mark_notification_as_read(notification_id, user_id):
            raise NotificationNotFoundError()

    async def mark_all_read(self, user_id: int) -> int:
        return await self.persistence.mark_all_notifications_as_read(user_id)

    async def delete(self, user_id: int, notification_id: int) -> None:
        if not await self.persistence.delete_notification(notification_id, user_id):
            raise NotificationNotFoundError()

    async def delete_many(self, user_id: int, notification_ids: Sequence[int]) -> int:
        """Delete the caller's notifications among ``notification_ids``; others are ignored."""
        return await self.persistence.delete_notifications(sorted(set(notification_ids)), user_id)

    async def delete_all(self, user_id: int) -> int:
        deleted = await self.persistence.delete_all_notifications(user_id)
        logger.info("Deleted %d notifications for user %s", deleted, user_id)
        return deleted
