"""Authentication service: registration and login."""

import logging

from app.core.config import Settings, settings
from app.core.security import create_access_token, hash_password, verify_password
from app.domains.storage.service import StorageService
from app.exceptions.user import DuplicateUserError, InvalidCredentialsError, WeakPasswordError
from app.persistence.base import PersistenceAdapter
from app.persistence.errors import DataAccessError, DuplicateRecordError
from app.services.side_effects import notify, record_activity

logger = logging.getLogger(__name__)


class AuthService:
    """Service class for account registration and credential checks."""

    def __init__(self, persistence: PersistenceAdapter, config: Settings = settings):
        self.persistence = persistence
        self.config = config

    async def register(self, username: str, email: str, password: str) -> dict:
        """
        Create an account and issue a token for it.

        The storage allocation, activity entry and welcome notification are
        best effort: the account exists even if they fail.

        :return: ``{"token": str, "user": {"id", "username", "email"}}``
        :raises WeakPasswordError: password shorter than the configured minimum.
        :raises DuplicateUserError: username or email already registered.
        """
        if len(password) < self.config.password_min_length:
            raise WeakPasswordError(self.config.password_min_length)

        if await self.persistence.find_user_by_email(email) or await self.persistence.find_user_by_username(
            username
        ):
            raise DuplicateUserError()

        try:
            user_id = await self.persistence.insert_user(username, email, hash_password(password))
        except DuplicateRecordError as e:
            raise DuplicateUserError() from e

        logger.info("Registered user %s (%s)", user_id, username)

        try:
            await StorageService(self.persistence, self.config).get_or_create_allocation(user_id)
        except DataAccessError as e:
            logger.warning("Storage allocation for new user %s failed: %s", user_id, e)

        await record_activity(self.persistence, user_id, "Account created")
        await notify(
            self.persistence,
            user_id,
            f"Welcome to ZYBoard, {username}!",
            type="success",
            category="account",
        )

        return {
            "token": create_access_token(user_id, username),
            "user": {"id": user_id, "username": username, "email": email},
        }

    async def login(self, email: str, password: str) -> dict:
        """Verify credentials; unknown email and wrong password fail identically."""
        user = await self.persistence.find_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        await record_activity(self.persistence, user.id, "Logged in")

        return {
            "token": create_access_token(user.id, user.username),
            "user": {"id": user.id, "username": user.username, "email": user.email},
        }
