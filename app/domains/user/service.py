"""User service layer."""

from app.exceptions.user import UserNotFoundError
from app.persistence.base import PersistenceAdapter
from app.persistence.records import UserRecord


class UserService:
    """Service class for user profile lookups."""

    def __init__(self, persistence: PersistenceAdapter):
        self.persistence = persistence

    async def get_profile(self, user_id: int) -> UserRecord:
        user = await self.persistence.find_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user
