"""Best-effort activity and notification writes.

A failed activity or notification insert must never fail the request that
triggered it, so both helpers log and return ``None`` instead of raising.
"""

import logging
from typing import Any

from app.persistence.base import PersistenceAdapter

logger = logging.getLogger(__name__)


async def record_activity(
    persistence: PersistenceAdapter,
    user_id: int,
    action: str,
    metadata: dict[str, Any] | None = None,
) -> int | None:
    try:
        return await persistence.insert_activity(user_id, action, metadata)
    except Exception as e:
        logger.warning("Failed to record activity %r for user %s: %s", action, user_id, e)
        return None


async def notify(
    persistence: PersistenceAdapter,
    user_id: int,
    message: str,
    type: str = "info",
    category: str = "general",
) -> int | None:
    try:
        return await persistence.insert_notification(user_id, message, type, category)
    except Exception as e:
        logger.warning("Failed to create notification for user %s: %s", user_id, e)
        return None
