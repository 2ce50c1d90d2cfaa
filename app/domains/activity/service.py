"""Activity log service layer."""

from app.persistence.base import PersistenceAdapter
from app.persistence.records import ActivityDay, ActivityRecord


class ActivityService:
    def __init__(self, persistence: PersistenceAdapter):
        self.persistence = persistence

    async def list_activities(self, user_id: int, limit: int = 20) -> list[ActivityRecord]:
        return await self.persistence.find_activities_by_user_id(user_id, limit)

    async def recent_activity(self, user_id: int, days: int = 7) -> list[ActivityDay]:
        """Activity counts per day over the last ``days`` days, newest first."""
        return await self.persistence.get_recent_activity(user_id, days)
