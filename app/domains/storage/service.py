"""Storage allocation service: quotas and usage statistics."""

import logging

from app.core.config import Settings, settings
from app.exceptions.user import UserNotFoundError
from app.persistence.base import PersistenceAdapter
from app.persistence.errors import DuplicateRecordError
from app.persistence.records import FileTypeStat, StorageRecord, UserStats

logger = logging.getLogger(__name__)


class StorageService:
    """Service class for per-user storage allocations."""

    def __init__(self, persistence: PersistenceAdapter, config: Settings = settings):
        self.persistence = persistence
        self.config = config

    async def get_or_create_allocation(self, user_id: int) -> StorageRecord:
        """Return the user's allocation, creating it with the default quota if absent."""
        storage = await self.persistence.find_storage_by_user_id(user_id)
        if storage is not None:
            return storage

        try:
            await self.persistence.insert_storage(user_id, self.config.default_storage_quota, 0)
            logger.info("Created storage allocation for user %s", user_id)
        except DuplicateRecordError:
            # another request created it first
            pass

        storage = await self.persistence.find_storage_by_user_id(user_id)
        if storage is None:
            return StorageRecord(
                user_id=user_id, total_space=self.config.default_storage_quota, used_space=0
            )
        return storage

    async def get_storage_info(self, user_id: int) -> dict:
        storage = await self.get_or_create_allocation(user_id)
        return {
            "total_space": storage.total_space,
            "used_space": storage.used_space,
            "available_space": storage.available_space,
        }

    async def get_user_stats(self, user_id: int) -> UserStats:
        stats = await self.persistence.get_user_stats(user_id)
        if stats is None:
            raise UserNotFoundError()
        return stats

    async def get_file_type_stats(self, user_id: int) -> list[FileTypeStat]:
        return await self.persistence.get_file_type_stats(user_id)
